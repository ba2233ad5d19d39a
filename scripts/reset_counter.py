"""
Administrative counter reset.

Sets the stored number of a sequence counter and prints the number the next
issue will produce. Examples:

    python -m scripts.reset_counter stt 17667          # next STT is STT017668
    python -m scripts.reset_counter invoice-pkp 5200
    python -m scripts.reset_counter billing 12 --key global_202610
"""
import argparse
import asyncio
import logging
import sys

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cargo.core.config import get_settings
from cargo.core.db import get_session_factory, init_database
from cargo.core.errors import ValidationFailure
from cargo.services.counter import (
    BILLING_INVOICE,
    EMPLOYEE,
    GLOBAL_KEY,
    INVOICE,
    PKP_KEY,
    STT,
    VOYAGE,
    SequenceCounterService,
)

# alias -> (family, default key)
ALIASES = {
    "stt": (STT, GLOBAL_KEY),
    "invoice": (INVOICE, GLOBAL_KEY),
    "invoice-pkp": (INVOICE, PKP_KEY),
    "voyage": (VOYAGE, GLOBAL_KEY),
    "employee": (EMPLOYEE, GLOBAL_KEY),
    "billing": (BILLING_INVOICE, None),
}


async def reset_counter(
    alias: str,
    value: int,
    key: str | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> str:
    family, default_key = ALIASES[alias]
    key = key or default_key
    if key is None:
        raise ValidationFailure(f"Counter {alias} needs --key", field="key")

    if session_factory is None:
        await init_database()
        session_factory = get_session_factory()
    service = SequenceCounterService(session_factory, get_settings().counter_max_retries)
    result = await service.reset_to(family, key, value)
    return result.next_number


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Reset a sequence counter")
    parser.add_argument("counter", choices=sorted(ALIASES), help="Counter to reset")
    parser.add_argument("value", type=int, help="New stored number (the next issued is value + 1)")
    parser.add_argument("--key", help="Counter key, e.g. global_202610 for billing invoices")
    args = parser.parse_args(argv)

    logging.basicConfig(level=get_settings().log_level.upper())
    try:
        next_number = asyncio.run(reset_counter(args.counter, args.value, args.key))
    except ValidationFailure as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Counter {args.counter} reset to {args.value}. Next number: {next_number}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
