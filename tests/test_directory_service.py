"""Tests for salesflow.services.directory_service - DirectoryService.

Coverage
--------
    1. add_employee: ID sequence per role prefix, start number, validation
    2. add_employee: phone normalisation and hierarchy auto-fill
    3. lookups: id / email / role / location attribute / WhatsApp
    4. inactive employees are excluded from lookups but kept in the table
    5. update_employee re-validates; deactivate never deletes
    6. backfill_locations fills blank hierarchy fields
"""

from unittest.mock import patch

import pytest

from salesflow.core.exceptions import MissingLocationError, RecordNotFoundError, ValidationError
from salesflow.models.records import Employee, LocationNode


def _add(directory, role="SR", **kw):
    data = {
        "name": kw.pop("name", f"{role} person"),
        "role": role,
        "email": kw.pop("email", None),
        "business_unit": kw.pop("business_unit", "ACL"),
    }
    if role == "SR":
        data["territory"] = kw.pop("territory", "Kushtia-01")
    elif role == "ASM":
        data["area"] = kw.pop("area", "Kushtia")
    data.update(kw)
    return directory.add_employee(data)


# ═══════════════════════════════════════════════════════════════════════════
#  add_employee
# ═══════════════════════════════════════════════════════════════════════════


class TestAddEmployee:
    def test_first_id_uses_start_number(self, services):
        employee = _add(services.directory, "SR")
        assert employee.id == "SR001"
        assert employee.status == "Active"

    def test_ids_are_sequential_per_prefix(self, services):
        directory = services.directory
        ids = [_add(directory, "SR").id, _add(directory, "ASM").id, _add(directory, "SR").id]
        assert ids == ["SR001", "ASM001", "SR002"]

    def test_next_id_follows_max_not_count(self, services):
        directory = services.directory
        _add(directory, "SR")
        second = _add(directory, "SR")
        services.store.write_cell("Employees", second.row_index, 0, "SR007")
        assert _add(directory, "SR").id == "SR008"

    def test_unknown_role_rejected(self, services):
        with pytest.raises(ValidationError):
            services.directory.add_employee({"name": "X", "role": "CEO"})

    def test_name_and_role_required(self, services):
        with pytest.raises(ValidationError) as exc_info:
            services.directory.add_employee({"territory": "Kushtia-01"})
        assert set(exc_info.value.details) == {"name", "role"}

    @pytest.mark.parametrize("role,attribute", [
        ("SR", "territory"), ("ASM", "area"), ("ZSM", "district"),
        ("BDO", "bd_territory"), ("CRO", "cro_territory"),
    ])
    def test_missing_role_location_rejected(self, services, role, attribute):
        with pytest.raises(MissingLocationError) as exc_info:
            services.directory.add_employee({"name": "X", "role": role, attribute: "  "})
        assert exc_info.value.required_attribute == attribute
        assert services.directory.all_employees(include_inactive=True) == []

    @pytest.mark.parametrize("role,attribute", [
        ("SR", "territory"), ("ASM", "area"), ("ZSM", "district"),
        ("BDO", "bd_territory"), ("CRO", "cro_territory"),
    ])
    def test_present_role_location_accepted(self, services, role, attribute):
        employee = services.directory.add_employee({"name": "X", "role": role, attribute: "V-1"})
        assert employee.id.startswith(role)

    def test_role_without_requirement_needs_no_location(self, services):
        employee = services.directory.add_employee({"name": "Head", "role": "BDI"})
        assert employee.id == "BDI001"

    def test_phone_numbers_normalised(self, services):
        employee = _add(services.directory, "SR", whatsapp_number="+880 1711-000001",
                        contact_number="01811000002")
        assert employee.whatsapp_number == "8801711000001"
        assert employee.contact_number == "8801811000002"

    def test_enclosing_levels_filled_from_location_map(self, services, kushtia_map):
        employee = _add(services.directory, "SR", territory="Kushtia-01")
        assert employee.area == "Kushtia"
        assert employee.district == "Jhenaidah"
        assert employee.zone == "Khulna"
        assert employee.bd_territory == "BD1"

    def test_given_values_not_overwritten(self, services, kushtia_map):
        employee = _add(services.directory, "ASM", area="Kushtia", zone="Custom")
        assert employee.zone == "Custom"
        assert employee.district == "Jhenaidah"

    def test_unresolvable_location_kept_as_given(self, services, kushtia_map):
        employee = _add(services.directory, "SR", territory="Nowhere-9")
        assert employee.territory == "Nowhere-9"
        assert employee.area == ""

    def test_row_round_trips_through_store(self, services):
        employee = _add(services.directory, "SR", email="a@example.com")
        stored = services.directory.get_employee(employee.id)
        assert stored == employee


# ═══════════════════════════════════════════════════════════════════════════
#  Lookups
# ═══════════════════════════════════════════════════════════════════════════


class TestLookups:
    def test_find_by_id_and_email(self, services, chain_staff):
        directory = services.directory
        assert directory.find_by_id("ASM001").name == "Karim"
        assert directory.find_by_email("ASM1@Example.com").id == "ASM001"
        assert directory.find_by_id("SR999") is None
        assert directory.find_by_email("") is None

    def test_find_by_role_single_and_many(self, services, chain_staff):
        directory = services.directory
        assert [e.id for e in directory.find_by_role("SR")] == ["SR001"]
        assert [e.id for e in directory.find_by_role(["BDO", "CRO"])] == ["BDO001", "CRO001"]

    def test_find_by_role_filters_business_unit(self, services, chain_staff):
        _add(services.directory, "SR", business_unit="AIL", territory="Jessore-01")
        assert [e.id for e in services.directory.find_by_role("SR", business_unit="AIL")] == ["SR002"]

    def test_find_by_location_attribute_is_exact(self, services, chain_staff):
        directory = services.directory
        assert [e.id for e in directory.find_by_location_attribute("area", "Kushtia", "ASM")] == ["ASM001"]
        assert directory.find_by_location_attribute("area", "kushtia", "ASM") == []
        assert directory.find_by_location_attribute("area", "Kusht", "ASM") == []

    def test_find_by_location_attribute_returns_table_order(self, services, kushtia_map):
        directory = services.directory
        first = _add(directory, "SR", name="First")
        second = _add(directory, "SR", name="Second")
        found = directory.find_by_location_attribute("territory", "Kushtia-01", "SR")
        assert [e.id for e in found] == [first.id, second.id]

    def test_find_by_location_attribute_unknown_attribute(self, services):
        with pytest.raises(ValidationError):
            services.directory.find_by_location_attribute("galaxy", "X")

    def test_find_by_whatsapp_prefers_whatsapp_then_contact(self, services):
        directory = services.directory
        a = _add(directory, "SR", contact_number="01711000009")
        b = _add(directory, "SR", whatsapp_number="01711000009")
        assert directory.find_by_whatsapp("+8801711000009").id == b.id
        c = _add(directory, "SR", contact_number="01911000000")
        assert directory.find_by_whatsapp("01911000000").id == c.id
        assert a.id != b.id
        assert directory.find_by_whatsapp("") is None

    def test_inactive_employees_excluded(self, services, chain_staff):
        directory = services.directory
        directory.deactivate_employee("ASM001")
        assert directory.find_by_id("ASM001") is None
        assert directory.find_by_role("ASM") == []
        assert directory.find_by_location_attribute("area", "Kushtia", "ASM") == []
        assert directory.get_employee("ASM001").status == "Inactive"


# ═══════════════════════════════════════════════════════════════════════════
#  update / deactivate / backfill
# ═══════════════════════════════════════════════════════════════════════════


class TestUpdates:
    def test_update_writes_changed_fields(self, services, chain_staff):
        updated = services.directory.update_employee("SR001", {"whatsapp_number": "01799000000"})
        assert updated.whatsapp_number == "8801799000000"
        assert services.directory.get_employee("SR001").whatsapp_number == "8801799000000"

    def test_update_writes_all_fields_in_one_call(self, services, chain_staff):
        store = services.store
        with patch.object(store, "write_cells", wraps=store.write_cells) as write_cells:
            services.directory.update_employee("SR001", {
                "name": "Rahim Uddin", "email": "rahim@example.com", "whatsapp_number": "01799000000",
            })
        assert write_cells.call_count == 1
        stored = services.directory.get_employee("SR001")
        assert (stored.name, stored.email, stored.whatsapp_number) == (
            "Rahim Uddin", "rahim@example.com", "8801799000000",
        )

    def test_update_cannot_blank_required_location(self, services, chain_staff):
        with pytest.raises(MissingLocationError):
            services.directory.update_employee("SR001", {"territory": ""})
        assert services.directory.get_employee("SR001").territory == "Kushtia-01"

    def test_role_change_revalidated(self, services, chain_staff):
        with pytest.raises(MissingLocationError):
            services.directory.update_employee("BDO001", {"role": "CRO"})

    def test_update_rejects_id_and_unknown_fields(self, services, chain_staff):
        with pytest.raises(ValidationError):
            services.directory.update_employee("SR001", {"id": "SR999"})
        with pytest.raises(ValidationError):
            services.directory.update_employee("SR001", {"salary": "1"})

    def test_get_unknown_employee_raises(self, services):
        with pytest.raises(RecordNotFoundError):
            services.directory.get_employee("SR404")

    def test_deactivate_keeps_row(self, services, chain_staff):
        services.directory.deactivate_employee("CRO001")
        all_ids = [e.id for e in services.directory.all_employees(include_inactive=True)]
        assert "CRO001" in all_ids

    def test_backfill_fills_blank_hierarchy(self, services):
        # Employees added before the Location Map existed.
        services.directory.add_employee({"name": "Old SR", "role": "SR", "territory": "Kushtia-01"})
        services.directory.add_employee({"name": "Old BDO", "role": "BDO", "bd_territory": "BD1"})
        services.resolver.add_node(_kushtia_node())
        assert services.directory.backfill_locations() == 1
        sr = services.directory.get_employee("SR001")
        assert (sr.area, sr.district, sr.zone) == ("Kushtia", "Jhenaidah", "Khulna")
        assert services.directory.backfill_locations() == 0


def _kushtia_node():
    return LocationNode(
        zone="Khulna", district="Jhenaidah", area="Kushtia", territory="Kushtia-01",
        bd_territory="BD1", cro_territory="CRO1", business_unit="ACL",
    )


def test_employee_contact_address_prefers_whatsapp():
    assert Employee(whatsapp_number="1", contact_number="2").contact_address == "1"
    assert Employee(contact_number="2").contact_address == "2"
    assert Employee().contact_address is None
