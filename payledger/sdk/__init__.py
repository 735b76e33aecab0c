"""Pay Ledger SDK - rate history, daily records and two-party accounts."""

from .config import (
    get_config_dir,
    get_settings_path,
    load_settings,
    save_settings,
    get_setting,
    set_setting,
    get_profile_path,
    load_profile,
    save_profile,
    get_profile_value,
    get_currencies,
    ProfileNotFoundError,
    # XDG paths
    get_data_path,
    get_snapshot_path,
)

from .errors import (
    LedgerError,
    NotFoundError,
    ValidationError,
    CheckpointLockedError,
)

from .schemas import (
    RateTerms,
    RateEntry,
    Worker,
    DailyRecord,
    DeferredAdvance,
    PersonalAccount,
    Transaction,
    SYSTEM_PARTY,
)

from .rates import (
    LEGACY_EFFECTIVE_DATE,
    legacy_rate_entry,
    resolve_rate,
    resolve_worker_rate,
    upsert_rate_entry,
    revise_initial_rate,
    seed_history,
)

from .pay import (
    compute_gross_pay,
    compute_net_pay,
    daily_equivalent_rate,
)

from .pma import (
    format_token,
    parse_tokens,
    strip_tokens,
    serialize_tokens,
    compose,
    normalize_plain,
    record_to_legacy,
    record_from_legacy,
)

from .state import (
    Book,
    LedgerState,
    SnapshotStore,
    MemorySnapshotStore,
    JsonSnapshotStore,
)

from .daily_records import (
    DailyRecordStore,
    AdvanceHistoryItem,
    MonthSummary,
)

from .ledger import (
    AccountLedger,
    AccountHistory,
    LedgerChange,
    ReconciliationResult,
)

from .workers import WorkerService

from .book import PayrollBook, open_book
