# services/nmr_processing_service.py
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from state.state_schema import NmrDataBundle

logger = logging.getLogger(__name__)

NMR_SUFFIXES = (".nmrium.zip", ".zip")


@dataclass
class NmrProcessingResult:
    bundle: NmrDataBundle
    success: bool
    error: Optional[str] = None


def clear_nmr_data() -> NmrDataBundle:
    return NmrDataBundle(archive_blob=None, spectra_count=0, file_name="")


def process_nmr_files(files: Sequence[Tuple[str, bytes]]) -> NmrProcessingResult:
    """
    Accepts a pre-built .nmrium.zip archive as (name, data). Only the first file is used;
    the archive is stored as-is, not unpacked.
    """
    if not files:
        return NmrProcessingResult(bundle=clear_nmr_data(), success=False, error="No file selected")

    name, data = files[0]
    if not name.lower().endswith(NMR_SUFFIXES):
        return NmrProcessingResult(bundle=clear_nmr_data(), success=False, error="Please upload a .nmrium.zip file")

    try:
        blob = bytes(data)
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not read NMR archive {name}: {e}")
        return NmrProcessingResult(bundle=clear_nmr_data(), success=False, error=str(e) or "Failed to process NMR file")

    return NmrProcessingResult(
        bundle=NmrDataBundle(archive_blob=blob, spectra_count=1, file_name=name),
        success=True,
    )
