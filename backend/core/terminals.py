"""
POS terminal descriptors.

Every section-like department (a composite code such as ``restaurant:main``,
or ``attributes.is_section``) is exposed as a terminal. Inactive sections are
kept in the list and reported ``offline``, so a till that was switched off
still shows up on the dashboard.
"""
import logging
from typing import Any, Dict, Iterable, List

from slugify import slugify

from core.department_codes import CODE_DELIMITER, parse_code, section_ledger_key
from core.errors import InvalidCode

logger = logging.getLogger(__name__)


def _attributes(department) -> Dict[str, Any]:
    return getattr(department, "attributes", None) or {}


def is_section(department) -> bool:
    return CODE_DELIMITER in (department.code or "") or bool(_attributes(department).get("is_section"))


def terminal_status(department) -> str:
    status = _attributes(department).get("terminal_status")
    if status:
        return str(status)
    return "online" if getattr(department, "is_active", True) else "offline"


def list_terminals(departments: Iterable) -> List[Dict[str, Any]]:
    """
    Build POS terminal descriptors for every section-like department.

    Input order is kept. Departments with a malformed code are logged and
    skipped. ``today`` is a placeholder aggregate filled in by whoever owns
    sales data.
    """
    terminals: List[Dict[str, Any]] = []
    for d in departments:
        if not is_section(d):
            continue
        try:
            base_code = parse_code(d.code).base_code
        except InvalidCode as e:
            logger.warning(f"skipping terminal for department {d.code!r}: {e}")
            continue
        terminals.append(
            {
                "id": d.code,
                "name": d.name,
                "department_code": base_code,
                "default_section_id": section_ledger_key(d.code),
                "slug": slugify(d.name or d.code),
                "status": terminal_status(d),
                "today": {"count": 0, "total": 0},
            }
        )
    return terminals
