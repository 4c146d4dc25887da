"""
docshield entry point.

Reads one collection (or one document) from the upstream through the cached,
rate-limited, circuit-broken repository and prints it as JSON.

    python main.py invoices
    python main.py invoices inv-001
"""

import asyncio
import json
import sys

from loguru import logger

from docshield.container import build_container, create_store
from docshield.datastore.engine import close_db
from docshield.services.errors import CircuitOpenError, RateLimitExceededError
from docshield.settings import global_settings


async def main(argv: list[str]) -> int:
    """Fetch and print; returns the process exit code."""
    if not argv:
        print("usage: main.py <collection> [document-id]", file=sys.stderr)
        return 2

    logger.remove()
    logger.add(sys.stderr, level=global_settings.log_level)

    store = await create_store(global_settings)
    container = build_container(global_settings, store=store)
    collection = argv[0]

    try:
        if len(argv) > 1:
            document = await container.documents.get_document(collection, argv[1])
            output = document.model_dump(mode="json") if document else None
        else:
            documents = await container.documents.list_documents(collection)
            output = [document.model_dump(mode="json") for document in documents]

        print(json.dumps(output, indent=2, ensure_ascii=False))
        status = await container.circuit_breaker.get_state()
        logger.info(f"Circuit status: {status.to_dict()}")
        return 0

    except RateLimitExceededError as e:
        logger.error(f"{e}")
        return 1
    except CircuitOpenError as e:
        logger.error(f"{e}")
        return 1
    finally:
        await container.close()
        await close_db()


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
