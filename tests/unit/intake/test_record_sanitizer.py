from estate_intake.schemas.confirm import MergeDecision, RecordKind
from estate_intake.services.intake.confirmation_service import merge_row
from estate_intake.services.intake.record_sanitizer import (
    ALLOWED_FIELDS,
    FURNISHED_VALUES,
    contact_candidates,
    sanitize_for_kind,
)


class TestSanitizeForKind:

    def test_only_allowed_columns(self):
        row = sanitize_for_kind(RecordKind.RENT, {"price": "12000", "hacker": "x", "id": "1"})
        assert list(row.keys()) == ALLOWED_FIELDS[RecordKind.RENT]

    def test_aliases_fill_record_columns(self):
        buyer = sanitize_for_kind(RecordKind.BUYER, {"move_timeline": "next month"})
        client = sanitize_for_kind(RecordKind.CLIENT, {"client_type": "Landlord"})
        sale = sanitize_for_kind(RecordKind.SALE, {"location_area": "Maadi"})

        assert buyer["timeline"] == "next month"
        assert client["role"] == "landlord"
        assert sale["area"] == "Maadi"

    def test_record_column_wins_over_alias(self):
        row = sanitize_for_kind(RecordKind.SALE, {"area": "Zamalek", "location_area": "Maadi"})
        assert row["area"] == "Zamalek"

    def test_numbers(self):
        row = sanitize_for_kind(RecordKind.SALE, {"price": "٣٥٠٠٠٠٠ EGP", "bedrooms": "", "floor": None})
        assert row["price"] == 3500000
        assert row["bedrooms"] is None
        assert row["floor"] is None

    def test_enums_fall_back(self):
        row = sanitize_for_kind(RecordKind.RENT, {
            "furnished": "not_furnished",
            "currency": "usd",
            "rent_period": "Monthly",
        })
        assert row["furnished"] == "unfurnished"
        assert row["currency"] == "egp"
        assert row["rent_period"] == "monthly"

        assert sanitize_for_kind(RecordKind.SALE, {"furnished": "maybe"})["furnished"] == "unknown"
        assert sanitize_for_kind(RecordKind.CLIENT, {"role": "broker"})["role"] == "owner"
        assert sanitize_for_kind(RecordKind.BUYER, {"intent": "lease"})["intent"] == ""

    def test_lists_and_phone(self):
        row = sanitize_for_kind(RecordKind.CLIENT, {"tags": "vip, , investor", "phone": "0100-123-4567"})
        assert row["tags"] == ["vip", "investor"]
        assert row["phone"] == "01001234567"

        buyer = sanitize_for_kind(RecordKind.BUYER, {"preferred_areas": ["Maadi", " ", "October"]})
        assert buyer["preferred_areas"] == ["Maadi", "October"]

    def test_empty_payload(self):
        row = sanitize_for_kind(RecordKind.CLIENT, None)
        assert row["name"] == ""
        assert row["role"] == "owner"
        assert row["tags"] == []


class TestContactCandidates:

    def test_record_columns_first(self):
        sanitized = {"name": "Mona", "phone": "0100"}
        assert contact_candidates(sanitized, {"contact_name": "Other"}) == ("Mona", "0100")

    def test_extracted_contact_fields(self):
        assert contact_candidates({}, {"contact_name": " Ali ", "contact_phone": "+20 (100) 5"}) == ("Ali", "201005")

    def test_nothing(self):
        assert contact_candidates({}, {}) == ("", "")


class TestMergeRow:

    def test_defaults(self):
        merged, changed = merge_row(
            {"price": 100, "notes": "first"},
            {"price": 200, "notes": "second"},
            {},
        )
        assert merged == {"price": 200, "notes": "first\nsecond"}
        assert changed == ["price", "notes"]

    def test_keep_existing(self):
        merged, changed = merge_row({"area": "Maadi"}, {"area": "Zamalek"}, {"area": MergeDecision.KEEP_EXISTING})
        assert merged == {"area": "Maadi"}
        assert changed == []

    def test_append_on_lists_keeps_existing(self):
        merged, changed = merge_row(
            {"preferred_areas": ["Maadi", "Zamalek"]},
            {"preferred_areas": ["Zamalek", "October"]},
            {"preferred_areas": "append"},
        )
        assert merged["preferred_areas"] == ["Maadi", "Zamalek"]
        assert changed == []

    def test_append_on_enum_and_text_fields_keeps_existing(self):
        merged, changed = merge_row(
            {"furnished": "furnished", "role": "owner", "area": "Maadi"},
            {"furnished": "unknown", "role": "seller", "area": "Zamalek"},
            {"furnished": "append", "role": "append", "area": "append"},
        )
        assert merged == {"furnished": "furnished", "role": "owner", "area": "Maadi"}
        assert merged["furnished"] in FURNISHED_VALUES
        assert changed == []

    def test_append_on_empty_field_keeps_it_empty(self):
        merged, changed = merge_row({"finishing": None}, {"finishing": "lux"}, {"finishing": "append"})
        assert merged["finishing"] is None
        assert changed == []

    def test_append_number_keeps_existing(self):
        merged, changed = merge_row({"price": 100}, {"price": 200}, {"price": "append"})
        assert merged["price"] == 100
        assert changed == []

    def test_append_to_empty_text(self):
        merged, changed = merge_row({"notes": None}, {"notes": "hello"}, {})
        assert merged["notes"] == "hello"
        assert changed == ["notes"]

    def test_replace_with_same_value_is_unchanged(self):
        _, changed = merge_row({"area": "Maadi", "tags": ["a"]}, {"area": "Maadi", "tags": ["a"]}, {})
        assert changed == []
