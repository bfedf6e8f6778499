"""Reference catalog of collectible units (chemical elements).

The catalog size is the denominator for the periodic-table completion
percentage. It is loaded once and treated as read-only afterwards.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from .config import get_settings

logger = logging.getLogger(__name__)

# Used when no catalog can be loaded at all.
FALLBACK_CATALOG_SIZE = 118

_SYMBOLS = (
    "H He Li Be B C N O F Ne Na Mg Al Si P S Cl Ar K Ca "
    "Sc Ti V Cr Mn Fe Co Ni Cu Zn Ga Ge As Se Br Kr Rb Sr Y Zr "
    "Nb Mo Tc Ru Rh Pd Ag Cd In Sn Sb Te I Xe Cs Ba La Ce Pr Nd "
    "Pm Sm Eu Gd Tb Dy Ho Er Tm Yb Lu Hf Ta W Re Os Ir Pt Au Hg "
    "Tl Pb Bi Po At Rn Fr Ra Ac Th Pa U Np Pu Am Cm Bk Cf Es Fm "
    "Md No Lr Rf Db Sg Bh Hs Mt Ds Rg Cn Nh Fl Mc Lv Ts Og"
).split()

ELEMENT_SYMBOLS: Dict[str, str] = {
    str(number): symbol for number, symbol in enumerate(_SYMBOLS, start=1)
}


class Catalog:
    """Read-only mapping of unit identifier (atomic number) to symbol."""

    def __init__(self, symbols: Dict[str, str]):
        self._symbols = dict(symbols)

    @property
    def symbols(self) -> Dict[str, str]:
        return dict(self._symbols)

    @property
    def size(self) -> int:
        return len(self._symbols) or FALLBACK_CATALOG_SIZE

    def __contains__(self, key: object) -> bool:
        return str(key) in self._symbols


def load_catalog(path: Optional[str] = None) -> Catalog:
    """Build the catalog, preferring a JSON override file when given.

    A missing or unreadable override falls back to the built-in table.
    """
    if not path:
        return Catalog(ELEMENT_SYMBOLS)

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("Could not read catalog file %s, using built-in table", path)
        return Catalog(ELEMENT_SYMBOLS)

    if not isinstance(raw, dict) or not raw:
        logger.warning("Catalog file %s is not a non-empty object, using built-in table", path)
        return Catalog(ELEMENT_SYMBOLS)

    return Catalog({str(key): str(value) for key, value in raw.items()})


@lru_cache()
def get_catalog() -> Catalog:
    return load_catalog(get_settings().CATALOG_PATH)
