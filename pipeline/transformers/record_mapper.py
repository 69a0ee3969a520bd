"""
Transform raw upstream records into validated canonical contacts
"""

from typing import Any, Dict, Optional, Tuple
from pydantic import ValidationError
from pipeline.base import RecordTransformer
from schemas.pipeline import CanonicalRecord, RawExternalRecord, is_valid_email
from core.exceptions import MappingError
import copy
import logging

logger = logging.getLogger(__name__)


class RecordMapper(RecordTransformer):
    """
    Map raw records to CanonicalRecord.

    Handles:
    - Key aliases (camelCase and snake_case)
    - Whitespace trimming
    - Required field checks in a fixed order
    - Email shape validation

    The first failing check is the reported reason; nothing is built
    from a record that fails any check.
    """

    FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
        "first_name": ("firstName", "first_name", "FirstName"),
        "last_name": ("lastName", "last_name", "LastName"),
        "email": ("email", "Email", "emailAddress", "email_address"),
        "phone": ("phone", "Phone", "phoneNumber", "phone_number"),
    }

    def map(self, raw: RawExternalRecord) -> CanonicalRecord:
        """
        Map one raw record.

        Raises:
            MappingError: With the reason for the first failed check
        """
        if not isinstance(raw, dict):
            raise MappingError("record is not an object", raw_snapshot=self._snapshot(raw))

        first_name = self._text(raw, "first_name")
        if not first_name:
            raise MappingError("missing firstName", raw_snapshot=self._snapshot(raw))

        last_name = self._text(raw, "last_name")
        if not last_name:
            raise MappingError("missing lastName", raw_snapshot=self._snapshot(raw))

        email = self._text(raw, "email")
        if not email:
            raise MappingError("missing email", raw_snapshot=self._snapshot(raw))
        if not is_valid_email(email):
            raise MappingError(f"invalid email: {email}", raw_snapshot=self._snapshot(raw))

        phone = self._phone(raw)

        try:
            return CanonicalRecord(
                first_name=first_name,
                last_name=last_name,
                email=email,
                phone=phone,
            )
        except ValidationError as e:
            raise MappingError(
                "record failed canonical validation",
                raw_snapshot=self._snapshot(raw),
                original_exception=e
            )

    def _lookup(self, raw: Dict[str, Any], field: str) -> Any:
        for key in self.FIELD_ALIASES[field]:
            if key in raw and raw[key] is not None:
                return raw[key]
        return None

    def _text(self, raw: Dict[str, Any], field: str) -> Optional[str]:
        """Required text fields accept strings only; blanks count as missing"""
        value = self._lookup(raw, field)
        if not isinstance(value, str):
            return None
        return value.strip() or None

    def _phone(self, raw: Dict[str, Any]) -> Optional[str]:
        value = self._lookup(raw, "phone")
        if value is None:
            return None
        if isinstance(value, bool):
            raise MappingError("invalid phone", raw_snapshot=self._snapshot(raw))
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str):
            return value.strip() or None
        raise MappingError("invalid phone", raw_snapshot=self._snapshot(raw))

    @staticmethod
    def _snapshot(raw: Any) -> Any:
        return copy.deepcopy(raw)
