"""ABN lookup against a local register of known entities."""

from __future__ import annotations

import logging
from typing import Any

from riskshield.core.exceptions import BadRequestError
from riskshield.services.abn import clean_abn, is_valid_abn_format, validate_abn_checksum

logger = logging.getLogger(__name__)

KNOWN_ENTITIES: dict[str, dict[str, str]] = {
    "51824753556": {
        "entity_name": "AUSTRALIAN BROADCASTING CORPORATION",
        "entity_type": "Commonwealth Entity",
        "status": "Active",
    },
    "33102417032": {
        "entity_name": "TELSTRA GROUP LIMITED",
        "entity_type": "Public Company",
        "status": "Active",
    },
}


def lookup_abn(raw: str) -> dict[str, Any]:
    abn = clean_abn(raw)
    if not is_valid_abn_format(abn):
        raise BadRequestError("ABN must be exactly 11 digits")
    if not validate_abn_checksum(abn):
        raise BadRequestError("Invalid ABN checksum - please verify the ABN is correct")

    entity = KNOWN_ENTITIES.get(abn)
    if entity is None:
        logger.debug("ABN %s not in local register", abn)
        return {
            "valid": True,
            "abn": abn,
            "entity_name": None,
            "status": "Unknown",
            "entity_type": None,
            "message": "ABN format is valid but entity not found in lookup. Entity details not available.",
            "source": "mock",
        }
    return {"valid": True, "abn": abn, "message": None, "source": "mock", **entity}
