import logging
from app.errors import NotFoundError, ValidationError
from app.schemas.chromebook import ChromebookResponse
from app.services.identifier import normalize
from app.store import CHROMEBOOKS, RecordStore

logger = logging.getLogger(__name__)


class ChromebookResolver:
    """Find the inventory row a token refers to.

    Strategies are tried in order and the first one that matches anything
    decides: normalized device code, raw device code, serial number,
    patrimony number. Matching is exact. A strategy that matches several
    devices is ambiguous and resolves to nothing.
    """

    FIELDS = ("chromebook_id", "chromebook_id", "serial_number", "patrimony_number")

    def __init__(self, store: RecordStore):
        self.store = store

    def strategies(self, token: str) -> list[tuple[str, str]]:
        raw = token.strip()
        candidates = zip(self.FIELDS, (normalize(raw), raw, raw, raw))
        seen = set()
        result = []
        for field, value in candidates:
            if (field, value) in seen:
                continue
            seen.add((field, value))
            result.append((field, value))
        return result

    def resolve(self, token: str) -> ChromebookResponse:
        if not token or not token.strip():
            raise ValidationError("Enter a device code, serial or patrimony number")

        for field, value in self.strategies(token):
            rows = self.store.select(CHROMEBOOKS, {field: value, "is_deprovisioned": False})
            if not rows:
                continue
            if len(rows) > 1:
                logger.info("Token %r is ambiguous: %d devices share %s", token, len(rows), field)
                raise NotFoundError(f"Identifier '{token.strip()}' matches more than one Chromebook")
            return ChromebookResponse.model_validate(rows[0])

        logger.info("No Chromebook matches token %r", token)
        raise NotFoundError(f"Chromebook with identifier '{token.strip()}' not found")
