# File: state/dropzones.py
from typing import List, Optional, Sequence, Tuple, Union
import logging

from services.massbank_validation_service import validate_massbank_files
from services.nmr_processing_service import process_nmr_files, clear_nmr_data
from state.entry_form_store import EntryFormStore
from state.state_schema import MassSpecDataBundle, MassSpecFile

logger = logging.getLogger(__name__)

MASSBANK_SUFFIXES = (".txt", ".mb")

DroppedFile = Tuple[str, Union[str, bytes]]


class MassSpecDropzone:
    def __init__(self, store: EntryFormStore):
        self.store = store
        self.is_processing = False
        self.error: Optional[str] = None

    @property
    def files(self) -> List[MassSpecFile]:
        return self.store.mass_spec_data.files if self.store.mass_spec_data else []

    async def handle_drop(self, dropped: Sequence[DroppedFile]) -> None:
        """Validates dropped MassBank files and appends them, valid or not, to the form."""
        if not dropped:
            return

        massbank_files = [f for f in dropped if f[0].lower().endswith(MASSBANK_SUFFIXES)]
        if not massbank_files:
            self.error = "Please drop MassBank files (.txt or .mb)"
            return

        self.is_processing = True
        self.error = None
        try:
            results = await validate_massbank_files(massbank_files)
            self.store.set_mass_spec_data(MassSpecDataBundle(files=self.files + results))
        except Exception as e:
            logger.error(f"MassBank drop failed: {e}", exc_info=True)
            self.error = str(e) or "Failed to process files"
        finally:
            self.is_processing = False

    def remove_file(self, file_id: str) -> None:
        self.store.set_mass_spec_data(MassSpecDataBundle(files=[f for f in self.files if f.id != file_id]))

    def clear_all(self) -> None:
        self.store.set_mass_spec_data(MassSpecDataBundle(files=[]))
        self.error = None


class NmrDropzone:
    def __init__(self, store: EntryFormStore):
        self.store = store
        self.is_processing = False
        self.error: Optional[str] = None

    def handle_drop(self, dropped: Sequence[Tuple[str, bytes]]) -> None:
        if not dropped:
            return

        self.is_processing = True
        self.error = None
        try:
            result = process_nmr_files(dropped)
            if result.success:
                self.store.set_nmr_data(result.bundle)
            else:
                self.error = result.error or "Failed to process NMR files"
        finally:
            self.is_processing = False

    def clear(self) -> None:
        self.store.set_nmr_data(clear_nmr_data())
        self.error = None
