"""
Map Meta lead form answers onto spreadsheet columns.
"""
from leadsync.schemas.meta_payloads import FieldDatum


def map_lead_fields(field_mapping: list[dict], field_data: list[FieldDatum]) -> list[str]:
    """
    One value per mapping entry, in mapping order.
    Unanswered or unknown fields become "" - a missing optional field never fails the lead.
    """
    answers = {}
    for datum in field_data:
        answers.setdefault(datum.name, datum.values)

    row = []
    for item in field_mapping or []:
        values = answers.get(item.get("form_field"))
        row.append(values[0] if values else "")
    return row


def sheet_headers(field_mapping: list[dict]) -> list[str]:
    """Destination column names in mapping order."""
    return [item.get("sheet_column", "") for item in field_mapping or []]
