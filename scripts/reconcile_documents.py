from __future__ import annotations

from datetime import timedelta

from api.observability import configure_logging
from core.backend.client import build_backend_client
from core.config import get_settings
from core.db import session_scope
from core.services.documents import reconcile_documents


def main() -> int:
    settings = get_settings()
    configure_logging(settings.log_level)
    client = build_backend_client(settings)
    try:
        with session_scope(client.session_factory) as s:
            report = reconcile_documents(s, client.storage, grace=timedelta(seconds=settings.orphan_grace_seconds))
    finally:
        client.close()

    print(f"finished_deletes={report.finished_deletes}")
    print(f"orphans_removed={report.orphans_removed}")
    print(f"recent_skipped={report.recent_skipped}")
    print(f"failures={report.failures}")

    return 0 if report.failures == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
