"""
Department code parsing and category inference.

Department codes may be composite and colon-delimited:

- ``restaurant``                 -> base only
- ``restaurant:main``            -> base + section
- ``bar-and-clubs:club-2:vip``   -> base + entity discriminator + section

The base code also drives the category heuristic that decides which
departments stock which item categories.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union

from core.errors import ConfigurationError, InvalidCode

CODE_DELIMITER = ":"
LEDGER_KEY_DELIMITER = "-"

KNOWN_CATEGORIES = ("drinks", "food", "supplies", "toiletries", "misc")
DEFAULT_CATEGORY = "supplies"


@dataclass(frozen=True)
class BaseCode:
    base_code: str

    @property
    def entity_id(self) -> Optional[str]:
        return None

    @property
    def section(self) -> Optional[str]:
        return None

    def tokens(self) -> Tuple[str, ...]:
        return (self.base_code,)


@dataclass(frozen=True)
class BaseWithSection:
    base_code: str
    section: str

    @property
    def entity_id(self) -> Optional[str]:
        return None

    def tokens(self) -> Tuple[str, ...]:
        return (self.base_code, self.section)


@dataclass(frozen=True)
class BaseWithEntityAndSection:
    base_code: str
    entity_id: str
    section: str

    def tokens(self) -> Tuple[str, ...]:
        return (self.base_code, self.entity_id, self.section)


ParsedCode = Union[BaseCode, BaseWithSection, BaseWithEntityAndSection]


def parse_code(code: str) -> ParsedCode:
    if code is None or not isinstance(code, str) or not code.strip():
        raise InvalidCode(code, "empty code")

    parts = code.strip().split(CODE_DELIMITER)
    if any(not p.strip() for p in parts):
        raise InvalidCode(code, "empty segment")
    parts = [p.strip() for p in parts]

    if len(parts) == 1:
        return BaseCode(parts[0])
    if len(parts) == 2:
        return BaseWithSection(parts[0], parts[1])
    if len(parts) == 3:
        return BaseWithEntityAndSection(parts[0], parts[1], parts[2])
    raise InvalidCode(code, f"expected at most 3 segments, got {len(parts)}")


def section_ledger_key(code: str) -> str:
    """``restaurant:main`` -> ``restaurant-main``; used as the ledger section discriminator."""
    return LEDGER_KEY_DELIMITER.join(parse_code(code).tokens())


def has_section(code: str) -> bool:
    return parse_code(code).section is not None


# Ordered (predicate, category) rules. The first match wins, so the order is
# part of the behaviour: "bar-restaurant" is a drinks department.
def _mentions(*needles: str) -> Callable[[str, str], bool]:
    def predicate(base: str, name: str) -> bool:
        return any(n in base or n in name for n in needles)
    return predicate


def _is_known_category(base: str, name: str) -> bool:
    return base in KNOWN_CATEGORIES


CategoryRule = Tuple[Callable[[str, str], bool], Callable[[str], str]]

CATEGORY_RULES: List[CategoryRule] = [
    (_mentions("bar", "club"), lambda base: "drinks"),
    (_mentions("rest"), lambda base: "food"),
    (_is_known_category, lambda base: base),
    (lambda base, name: True, lambda base: DEFAULT_CATEGORY),
]


def category_for(code: str, name: Optional[str] = None) -> str:
    base = parse_code(code).base_code.lower()
    lowered_name = (name or "").strip().lower()
    for predicate, category in CATEGORY_RULES:
        if predicate(base, lowered_name):
            return category(base)
    raise ConfigurationError(f"No category rule matched department code {code!r}")


def department_category(department) -> str:
    """Stored category wins; otherwise infer it from the code and name."""
    stored = (getattr(department, "category", None) or "").strip().lower()
    if stored:
        return stored
    return category_for(department.code, getattr(department, "name", None))


def department_section_id(department) -> Optional[str]:
    """Ledger section key for a department whose code names a section, else None."""
    if not has_section(department.code):
        return None
    return section_ledger_key(department.code)
