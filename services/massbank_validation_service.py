# services/massbank_validation_service.py
import asyncio
import logging
import re
import uuid
from typing import Dict, List, Sequence, Tuple, Union

from state.state_schema import (
    MassSpecFile,
    MassSpecValidationError,
    MassSpecValidationWarning,
)

logger = logging.getLogger(__name__)

# Maximum concurrent validations per batch
BATCH_SIZE = 5

MANDATORY_TAGS = [
    "ACCESSION",
    "RECORD_TITLE",
    "DATE",
    "AUTHORS",
    "LICENSE",
    "CH$NAME",
    "CH$COMPOUND_CLASS",
    "CH$FORMULA",
    "CH$EXACT_MASS",
    "CH$SMILES",
    "CH$IUPAC",
    "AC$INSTRUMENT",
    "AC$INSTRUMENT_TYPE",
    "AC$MASS_SPECTROMETRY: MS_TYPE",
    "AC$MASS_SPECTROMETRY: ION_MODE",
    "PK$SPLASH",
    "PK$NUM_PEAK",
    "PK$PEAK",
]

SINGLE_TAGS = {
    "ACCESSION", "RECORD_TITLE", "DATE", "AUTHORS", "LICENSE", "COPYRIGHT",
    "PUBLICATION", "PROJECT", "DEPRECATED", "CH$COMPOUND_CLASS", "CH$FORMULA",
    "CH$EXACT_MASS", "CH$SMILES", "CH$IUPAC", "SP$SCIENTIFIC_NAME", "SP$LINEAGE",
    "AC$INSTRUMENT", "AC$INSTRUMENT_TYPE", "AC$MASS_SPECTROMETRY: MS_TYPE",
    "AC$MASS_SPECTROMETRY: ION_MODE", "PK$SPLASH", "PK$NUM_PEAK", "PK$PEAK",
    "PK$ANNOTATION",
}

# Tags that accept any "SUBTAG value" payload
SUBTAG_PREFIXES = (
    "CH$LINK", "SP$LINK", "SP$SAMPLE", "AC$MASS_SPECTROMETRY", "AC$CHROMATOGRAPHY",
    "AC$GENERAL", "MS$FOCUSED_ION", "MS$DATA_PROCESSING",
)

KNOWN_TAGS = set(MANDATORY_TAGS) | SINGLE_TAGS | {"COMMENT", "CH$NAME"}

# Tags followed by indented continuation lines
MULTILINE_TAGS = {"PK$PEAK", "PK$ANNOTATION"}

ACCESSION_PATTERN = re.compile(r"^MSBNK-[A-Za-z0-9_]{1,32}-[A-Z0-9_]{1,64}$")
DATE_PATTERN = re.compile(r"^\d{4}\.\d{2}\.\d{2}( \(.*\))?$")
MS_TYPE_PATTERN = re.compile(r"^MS\d*$")
ION_MODES = {"POSITIVE", "NEGATIVE"}
LICENSES = {"CC0", "CC BY", "CC BY-NC", "CC BY-NC-SA", "CC BY-SA", "dl-de/by-2-0"}
NUMBER_PATTERN = re.compile(r"^-?\d+(\.\d+)?([eE][-+]?\d+)?$")
TAG_LINE = re.compile(r"^[A-Z$_]+: ")


def _tag_of(line: str) -> Tuple[str, str]:
    """
    'AC$MASS_SPECTROMETRY: ION_MODE POSITIVE' -> ('AC$MASS_SPECTROMETRY: ION_MODE', 'POSITIVE')
    'CH$NAME: Caffeine' -> ('CH$NAME', 'Caffeine')
    """
    tag, _, value = line.partition(": ")
    if tag in SUBTAG_PREFIXES:
        subtag, _, rest = value.partition(" ")
        return f"{tag}: {subtag}", rest.strip()
    return tag, value.strip()


def check_massbank_record(content: str) -> Tuple[List[MassSpecValidationError], List[MassSpecValidationWarning]]:
    """
    Grammar check of a single MassBank record. Returns (errors, warnings);
    a record is valid when errors is empty.
    """
    errors: List[MassSpecValidationError] = []
    warnings: List[MassSpecValidationWarning] = []

    seen: Dict[str, int] = {}
    values: Dict[str, Tuple[str, int]] = {}
    peak_lines: List[Tuple[int, str]] = []
    current_multiline = None
    terminated = False

    lines = content.splitlines()
    if not any(line.strip() for line in lines):
        errors.append(MassSpecValidationError("Empty record", line=1, column=1, type="parse"))
        return errors, warnings

    for lineno, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r")

        if terminated:
            if line.strip():
                errors.append(MassSpecValidationError("Content after end of record '//'", line=lineno, column=1, type="parse"))
            continue

        if line == "//":
            terminated = True
            continue

        if not line.strip():
            errors.append(MassSpecValidationError("Empty line is not allowed inside a record", line=lineno, column=1, type="parse"))
            continue

        if line.startswith("  "):
            if current_multiline is None:
                errors.append(MassSpecValidationError("Unexpected indented line", line=lineno, column=1, type="parse"))
            elif current_multiline == "PK$PEAK":
                peak_lines.append((lineno, line.strip()))
            continue

        if not TAG_LINE.match(line):
            errors.append(MassSpecValidationError(f"Malformed line: expected 'TAG: value', got '{line[:40]}'", line=lineno, column=1, type="parse"))
            current_multiline = None
            continue

        tag, value = _tag_of(line)
        current_multiline = tag if tag in MULTILINE_TAGS else None

        if tag not in KNOWN_TAGS and tag.split(": ")[0] not in SUBTAG_PREFIXES:
            warnings.append(MassSpecValidationWarning(f"Unknown tag '{tag}'", line=lineno, column=1))

        seen[tag] = seen.get(tag, 0) + 1
        if tag in SINGLE_TAGS and seen[tag] > 1:
            errors.append(MassSpecValidationError(f"Duplicate field '{tag}'", line=lineno, column=1, type="duplicate"))
            continue
        values.setdefault(tag, (value, lineno))

    if not terminated:
        errors.append(MassSpecValidationError("Record must end with '//'", line=len(lines), column=1, type="parse"))

    for tag in MANDATORY_TAGS:
        if tag not in seen:
            errors.append(MassSpecValidationError(f"Missing mandatory field '{tag}'", type="validation"))

    _check_values(values, peak_lines, errors, warnings)
    return errors, warnings


def _check_values(values, peak_lines, errors, warnings) -> None:
    def value_of(tag):
        return values.get(tag, (None, None))

    accession, line = value_of("ACCESSION")
    if accession is not None and not ACCESSION_PATTERN.match(accession):
        errors.append(MassSpecValidationError(f"Invalid ACCESSION '{accession}'", line=line, column=12, type="validation"))

    date, line = value_of("DATE")
    if date is not None and not DATE_PATTERN.match(date):
        errors.append(MassSpecValidationError(f"Invalid DATE '{date}', expected YYYY.MM.DD", line=line, column=7, type="validation"))

    license_, line = value_of("LICENSE")
    if license_ is not None and license_ not in LICENSES:
        warnings.append(MassSpecValidationWarning(f"Unusual LICENSE '{license_}'", line=line, column=10))

    exact_mass, line = value_of("CH$EXACT_MASS")
    if exact_mass is not None and not NUMBER_PATTERN.match(exact_mass):
        errors.append(MassSpecValidationError(f"CH$EXACT_MASS must be a number, got '{exact_mass}'", line=line, column=16, type="validation"))

    ms_type, line = value_of("AC$MASS_SPECTROMETRY: MS_TYPE")
    if ms_type is not None and not MS_TYPE_PATTERN.match(ms_type):
        errors.append(MassSpecValidationError(f"Invalid MS_TYPE '{ms_type}'", line=line, type="validation"))

    ion_mode, line = value_of("AC$MASS_SPECTROMETRY: ION_MODE")
    if ion_mode is not None and ion_mode not in ION_MODES:
        errors.append(MassSpecValidationError(f"Invalid ION_MODE '{ion_mode}'", line=line, type="validation"))

    for lineno, peak in peak_lines:
        parts = peak.split()
        if len(parts) != 3 or not all(NUMBER_PATTERN.match(p) for p in parts):
            errors.append(MassSpecValidationError(f"Malformed peak '{peak}', expected 'm/z int. rel.int.'", line=lineno, column=3, type="parse"))

    num_peak, line = value_of("PK$NUM_PEAK")
    if num_peak is not None:
        if not num_peak.isdigit():
            errors.append(MassSpecValidationError(f"PK$NUM_PEAK must be an integer, got '{num_peak}'", line=line, column=14, type="validation"))
        elif int(num_peak) != len(peak_lines):
            errors.append(MassSpecValidationError(
                f"PK$NUM_PEAK is {num_peak} but {len(peak_lines)} peaks are listed",
                line=line, column=14, type="validation"
            ))


def validate_massbank_content(name: str, data: Union[str, bytes]) -> MassSpecFile:
    """
    Validates one MassBank file. Never raises: anything unexpected becomes an 'other' error.
    """
    try:
        content = data.decode("utf-8") if isinstance(data, bytes) else data
        errors, warnings = check_massbank_record(content)
        return MassSpecFile(
            id=str(uuid.uuid4()),
            original_name=name,
            content=content,
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
        )
    except Exception as e:
        logger.warning(f"MassBank validation crashed for {name}: {e}")
        return MassSpecFile(
            id=str(uuid.uuid4()),
            original_name=name,
            content="",
            is_valid=False,
            errors=[MassSpecValidationError(str(e) or "Failed to validate file", type="other")],
            warnings=[],
        )


async def validate_massbank_file(name: str, data: Union[str, bytes]) -> MassSpecFile:
    return await asyncio.to_thread(validate_massbank_content, name, data)


async def validate_massbank_files(files: Sequence[Tuple[str, Union[str, bytes]]]) -> List[MassSpecFile]:
    """
    Validates (name, data) pairs in batches of BATCH_SIZE. Batches run one after
    another; files inside a batch run concurrently. Results keep input order.
    """
    results: List[MassSpecFile] = []
    for i in range(0, len(files), BATCH_SIZE):
        batch = files[i:i + BATCH_SIZE]
        batch_results = await asyncio.gather(*(validate_massbank_file(name, data) for name, data in batch))
        results.extend(batch_results)
    return results
