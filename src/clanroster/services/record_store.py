from __future__ import annotations

from .audit_trail import AuditTrail
from .bans_store import BansStore
from .base import BaseService, transaction
from .members_store import MembersStore
from .warnings_store import WarningsStore


class RecordStore:
    """The three roster collections plus the audit trail over one SQLite file.

    Cross-collection mutations (warn escalating to ban, audit appends) share a
    single ``transaction()`` so they commit or roll back together.
    """

    def __init__(self, sqlite_path: str) -> None:
        self.sqlite_path = sqlite_path
        self.audit = AuditTrail(sqlite_path)
        self.members = MembersStore(sqlite_path, self.audit)
        self.warnings = WarningsStore(sqlite_path)
        self.bans = BansStore(sqlite_path)

    @property
    def stores(self) -> list[BaseService]:
        # members before member_history; warning_ledgers before warning_entries
        return [self.members, self.audit, self.warnings, self.bans]

    def transaction(self):
        return transaction(self.sqlite_path)
