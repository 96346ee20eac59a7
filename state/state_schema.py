# File: state/state_schema.py
from dataclasses import dataclass, field
from typing import TypedDict, List, Optional, Dict, Any, Literal

ErrorType = Literal["parse", "validation", "serialization", "duplicate", "other"]


@dataclass
class MassSpecValidationError:
    message: str
    line: Optional[int] = None
    column: Optional[int] = None
    type: Optional[ErrorType] = None


@dataclass
class MassSpecValidationWarning:
    message: str
    line: Optional[int] = None
    column: Optional[int] = None


@dataclass
class MassSpecFile:
    id: str
    original_name: str
    content: str
    is_valid: bool
    errors: List[MassSpecValidationError] = field(default_factory=list)
    warnings: List[MassSpecValidationWarning] = field(default_factory=list)


@dataclass
class MassSpecDataBundle:
    files: List[MassSpecFile] = field(default_factory=list)


@dataclass
class NmrDataBundle:
    # Binary payloads never go into a draft
    archive_blob: Optional[bytes] = None
    spectra_count: int = 0
    file_name: str = ""


class UserProfile(TypedDict, total=False):
    orcid: str
    name: str
    email: Optional[str]
    institution: Optional[str]


class EntryDraft(TypedDict):
    entryId: str
    title: Optional[str]
    description: Optional[str]
    authors: List[Dict[str, Any]]   # Author wire dicts
    molecule: Optional[Dict[str, Any]]
    savedAt: int                    # epoch ms
