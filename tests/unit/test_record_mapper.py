"""
Unit tests for the record mapper
"""

import pytest
from pydantic import ValidationError
from pipeline.transformers.record_mapper import RecordMapper
from schemas.pipeline import CanonicalRecord
from core.exceptions import MappingError, NonRetryableError


class TestRecordMapper:
    """Test mapping raw records to canonical contacts"""

    def test_map_valid_record(self):
        """Test fields are carried over unchanged"""
        mapper = RecordMapper()

        record = mapper.map({
            "firstName": "Ada",
            "lastName": "Lovelace",
            "email": "ada@example.com",
            "phone": "555-0100"
        })

        assert record.first_name == "Ada"
        assert record.last_name == "Lovelace"
        assert record.email == "ada@example.com"
        assert record.phone == "555-0100"

    def test_phone_is_optional(self):
        """Test a record without phone maps with phone None"""
        record = RecordMapper().map({"firstName": "A", "lastName": "B", "email": "a@b.com"})

        assert record.phone is None

    def test_missing_last_name_reported(self):
        """Test the first failed check is the reason"""
        raw = {"firstName": "C"}

        with pytest.raises(MappingError) as exc_info:
            RecordMapper().map(raw)

        assert exc_info.value.reason == "missing lastName"
        assert exc_info.value.raw_snapshot == raw

    @pytest.mark.parametrize("raw,reason", [
        ({"lastName": "B", "email": "a@b.com"}, "missing firstName"),
        ({"firstName": "A", "email": "a@b.com"}, "missing lastName"),
        ({"firstName": "A", "lastName": "B"}, "missing email"),
        ({"firstName": "  ", "lastName": "B", "email": "a@b.com"}, "missing firstName"),
        ({"firstName": 42, "lastName": "B", "email": "a@b.com"}, "missing firstName"),
        ({"firstName": "A", "lastName": "B", "email": None}, "missing email"),
    ])
    def test_missing_fields(self, raw, reason):
        """Test absent, blank and non-string required fields count as missing"""
        with pytest.raises(MappingError) as exc_info:
            RecordMapper().map(raw)

        assert exc_info.value.reason == reason

    @pytest.mark.parametrize("email", ["a@@b.com", "@b.com", "a@", "ab.com", "a@b@c.com"])
    def test_invalid_email(self, email):
        """Test email must have exactly one @ with non-empty parts"""
        with pytest.raises(MappingError) as exc_info:
            RecordMapper().map({"firstName": "A", "lastName": "B", "email": email})

        assert exc_info.value.reason == f"invalid email: {email}"

    def test_whitespace_trimmed(self):
        """Test surrounding whitespace is removed"""
        record = RecordMapper().map({
            "firstName": "  Ada ",
            "lastName": "Lovelace\n",
            "email": " ada@example.com "
        })

        assert record.first_name == "Ada"
        assert record.last_name == "Lovelace"
        assert record.email == "ada@example.com"

    def test_snake_case_keys(self):
        """Test snake_case aliases are accepted"""
        record = RecordMapper().map({
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email_address": "ada@example.com",
            "phone_number": 5550100
        })

        assert record.email == "ada@example.com"
        assert record.phone == "5550100"

    @pytest.mark.parametrize("phone", [True, {"home": "1"}, ["1"], 1.5])
    def test_invalid_phone(self, phone):
        """Test non-text phone values are rejected"""
        with pytest.raises(MappingError) as exc_info:
            RecordMapper().map({"firstName": "A", "lastName": "B", "email": "a@b.com", "phone": phone})

        assert exc_info.value.reason == "invalid phone"

    @pytest.mark.parametrize("raw", ["text", 7, None, ["a"]])
    def test_non_object_record(self, raw):
        """Test records that are not JSON objects fail mapping"""
        with pytest.raises(MappingError) as exc_info:
            RecordMapper().map(raw)

        assert exc_info.value.reason == "record is not an object"

    def test_snapshot_is_independent_copy(self):
        """Test later changes to the raw record do not reach the snapshot"""
        raw = {"firstName": "C", "tags": ["x"]}

        with pytest.raises(MappingError) as exc_info:
            RecordMapper().map(raw)

        raw["tags"].append("y")
        assert exc_info.value.raw_snapshot == {"firstName": "C", "tags": ["x"]}

    def test_mapping_error_is_not_retryable(self):
        """Test mapping failures are classified as non-retryable"""
        with pytest.raises(NonRetryableError):
            RecordMapper().map({})

    def test_map_batch_continues_after_failure(self):
        """Test one bad record does not stop the others, indices preserved"""
        raws = [
            {"firstName": "A", "lastName": "B", "email": "a@b.com"},
            {"firstName": "C"},
            {"firstName": "D", "lastName": "E", "email": "d@e.com"},
        ]

        mapped, failed = RecordMapper().map_batch(raws)

        assert [index for index, _ in mapped] == [0, 2]
        assert [record.email for _, record in mapped] == ["a@b.com", "d@e.com"]
        assert len(failed) == 1
        assert failed[0][0] == 1
        assert failed[0][1].reason == "missing lastName"


class TestCanonicalRecord:
    """Test canonical record invariants"""

    def test_invalid_email_cannot_be_built(self):
        """Test the model rejects emails the mapper would reject"""
        with pytest.raises(ValidationError):
            CanonicalRecord(first_name="A", last_name="B", email="a@@b")

    def test_blank_name_cannot_be_built(self):
        """Test blank names are rejected"""
        with pytest.raises(ValidationError):
            CanonicalRecord(first_name="   ", last_name="B", email="a@b.com")

    def test_alias_population(self):
        """Test camelCase aliases populate the fields"""
        record = CanonicalRecord(firstName="A", lastName="B", email="a@b.com")

        assert record.first_name == "A"
        assert record.model_dump(by_alias=True) == {
            "firstName": "A",
            "lastName": "B",
            "email": "a@b.com",
            "phone": None
        }

    def test_record_is_frozen(self):
        """Test records cannot be modified after creation"""
        record = CanonicalRecord(first_name="A", last_name="B", email="a@b.com")

        with pytest.raises(ValidationError):
            record.email = "c@d.com"
