"""
Tests for mapping lead form answers onto sheet columns.
"""
from leadsync.schemas.meta_payloads import FieldDatum
from leadsync.services.field_mapping import map_lead_fields, sheet_headers

MAPPING = [
    {"form_field": "full_name", "form_field_label": "Name", "sheet_column": "Name"},
    {"form_field": "email", "form_field_label": "Email", "sheet_column": "Email"},
    {"form_field": "phone_number", "form_field_label": "Phone", "sheet_column": "Phone"},
    {"form_field": "city", "form_field_label": "City", "sheet_column": "City"},
]


class TestMapLeadFields:
    def test_values_follow_mapping_order(self):
        data = [
            FieldDatum(name="city", values=["Lisbon"]),
            FieldDatum(name="phone_number", values=["+351900000000"]),
            FieldDatum(name="email", values=["a@b.com"]),
            FieldDatum(name="full_name", values=["Ana"]),
        ]
        assert map_lead_fields(MAPPING, data) == ["Ana", "a@b.com", "+351900000000", "Lisbon"]

    def test_missing_fields_become_empty_strings(self):
        data = [FieldDatum(name="email", values=["a@b.com"])]
        row = map_lead_fields(MAPPING, data)
        assert len(row) == len(MAPPING)
        assert row == ["", "a@b.com", "", ""]

    def test_first_value_is_taken(self):
        data = [FieldDatum(name="email", values=["first@b.com", "second@b.com"])]
        assert map_lead_fields(MAPPING[1:2], data) == ["first@b.com"]

    def test_field_with_no_values_is_empty(self):
        data = [FieldDatum(name="email", values=[])]
        assert map_lead_fields(MAPPING[1:2], data) == [""]

    def test_extra_form_fields_are_ignored(self):
        data = [FieldDatum(name="unmapped", values=["x"]), FieldDatum(name="email", values=["e"])]
        assert map_lead_fields(MAPPING[1:2], data) == ["e"]

    def test_empty_mapping(self):
        assert map_lead_fields([], [FieldDatum(name="email", values=["e"])]) == []
        assert map_lead_fields(None, []) == []


class TestSheetHeaders:
    def test_headers_in_mapping_order(self):
        assert sheet_headers(MAPPING) == ["Name", "Email", "Phone", "City"]
