from types import SimpleNamespace

from core.terminals import is_section, list_terminals, terminal_status


def _dept(code, name, is_active=True, attributes=None):
    return SimpleNamespace(code=code, name=name, is_active=is_active, attributes=attributes or {})


def test_only_sections_become_terminals():
    departments = [
        _dept("restaurant", "Restaurant"),
        _dept("restaurant:main", "Main Dining"),
        _dept("bar-and-clubs:club-2:vip", "VIP Lounge", is_active=False),
    ]
    terminals = list_terminals(departments)

    assert [t["id"] for t in terminals] == ["restaurant:main", "bar-and-clubs:club-2:vip"]
    assert terminals[0] == {
        "id": "restaurant:main",
        "name": "Main Dining",
        "department_code": "restaurant",
        "default_section_id": "restaurant-main",
        "slug": "main-dining",
        "status": "online",
        "today": {"count": 0, "total": 0},
    }
    assert terminals[1]["department_code"] == "bar-and-clubs"
    assert terminals[1]["default_section_id"] == "bar-and-clubs-club-2-vip"
    assert terminals[1]["status"] == "offline"


def test_section_flag_in_attributes():
    department = _dept("poolbar", "Pool Bar", attributes={"is_section": True})
    assert is_section(department)
    [terminal] = list_terminals([department])
    assert terminal["department_code"] == "poolbar"
    assert terminal["default_section_id"] == "poolbar"


def test_status_override():
    department = _dept("restaurant:main", "Main", attributes={"terminal_status": "maintenance"})
    assert terminal_status(department) == "maintenance"


def test_empty_input():
    assert list_terminals([]) == []


def test_malformed_codes_are_skipped():
    departments = [
        _dept("bar::vip", "Broken"),
        _dept("restaurant:main", "Main Dining"),
        _dept("spa:a:b:c", "Too Deep"),
    ]
    assert [t["id"] for t in list_terminals(departments)] == ["restaurant:main"]
