"""
Bank name to Paystack bank code mapping for Kenyan payout destinations.

Hosts type their bank name free-text when adding bank details, so the
lookup is case-insensitive and ignores surrounding whitespace. Names that
are not in the table are passed through (lower-cased and trimmed) and the
gateway decides whether it accepts them; a rejected code fails the payout
with the gateway's message.

Usage:
    from payments.banks import get_bank_code

    get_bank_code("Equity Bank")   # "070"
    get_bank_code(" MPESA ")       # "063"
    get_bank_code("Sidian")        # "sidian" (passthrough)
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

BANK_CODES: dict[str, str] = {
    "equity": "070",
    "equity bank": "070",
    "kcb": "062",
    "kcb bank": "062",
    "cooperative": "078",
    "cooperative bank": "078",
    "coop bank": "078",
    "absa": "076",
    "absa bank": "076",
    "stanbic": "072",
    "stanbic bank": "072",
    "dtb": "076",
    "diamond trust": "076",
    "ncba": "069",
    "ncba bank": "069",
    "family bank": "050",
    "im bank": "067",
    "im bank limited": "067",
    "standard chartered": "074",
    # M-Pesa paybill
    "mpesa": "063",
}


def normalize_bank_name(bank_name: str) -> str:
    return (bank_name or "").strip().lower()


def get_bank_code(bank_name: str) -> str:
    """
    Return the gateway bank code for a free-text bank name.

    Unmapped names come back normalized rather than raising.
    """
    normalized = normalize_bank_name(bank_name)
    code = BANK_CODES.get(normalized)
    if code is None:
        logger.warning(
            "Unmapped bank name passed through to gateway",
            extra={"bank_name": normalized},
        )
        return normalized
    return code


def is_known_bank(bank_name: str) -> bool:
    return normalize_bank_name(bank_name) in BANK_CODES
