# services/molecule_service.py
import logging
from typing import Literal, Optional

from rdkit import Chem
from rdkit.Chem import Descriptors, rdMolDescriptors

from api.models.entry_models import MoleculeData

logger = logging.getLogger(__name__)

MoleculeInputType = Literal["molfile", "smiles"]


class MoleculeParseError(ValueError):
    pass


def disable_rdkit_logging():
    """
    Unparseable user input is expected here; keep RDKit from printing it to stderr.
    """
    import rdkit.rdBase as rkrb
    import rdkit.RDLogger as rkl
    rkl.logger().setLevel(rkl.ERROR)
    rkrb.DisableLog('rdApp.error')


disable_rdkit_logging()


def _to_mol(input_type: MoleculeInputType, data: str) -> Optional[Chem.Mol]:
    if not data or not data.strip():
        return None
    if input_type == "molfile":
        return Chem.MolFromMolBlock(data)
    return Chem.MolFromSmiles(data.strip())


def process_molecule(input_type: MoleculeInputType, data: str) -> MoleculeData:
    """
    Parses a molfile or SMILES and derives the descriptor stored with an entry.
    The InChIKey stands in as the canonical identifier code.
    """
    mol = _to_mol(input_type, data)
    if mol is None or mol.GetNumAtoms() == 0:
        raise MoleculeParseError(f"Could not parse {input_type} input")

    return MoleculeData(
        molfile_v3=Chem.MolToV3KMolBlock(mol),
        id_code=Chem.MolToInchiKey(mol) or "",
        smiles=Chem.MolToSmiles(mol),
        molecular_formula=rdMolDescriptors.CalcMolFormula(mol),
        molecular_weight=Descriptors.MolWt(mol),
        monoisotopic_mass=Descriptors.ExactMolWt(mol),
    )


def process_molfile(molfile: str) -> MoleculeData:
    return process_molecule("molfile", molfile)


def process_smiles(smiles: str) -> MoleculeData:
    return process_molecule("smiles", smiles)


def is_valid_molfile(molfile: str) -> bool:
    try:
        mol = _to_mol("molfile", molfile)
    except Exception:
        return False
    return mol is not None and mol.GetNumAtoms() > 0


def is_valid_smiles(smiles: str) -> bool:
    try:
        mol = _to_mol("smiles", smiles)
    except Exception:
        return False
    return mol is not None and mol.GetNumAtoms() > 0
