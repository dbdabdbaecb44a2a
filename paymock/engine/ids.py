from enum import Enum


class IdFamily(str, Enum):
    OBJECT = "object"
    BALANCE_TRANSACTION = "balance_transaction"
    APPLICATION_FEE = "application_fee"


class IdGenerator:
    """
    Hands out "<global_prefix><prefix>_<n>" ids.

    Balance transactions and application fees count separately from every
    other object so their ids form visually distinct families
    (test_txn_1, test_fee_1 next to test_cus_7).  Counters only ever go up;
    a deleted record's id is never handed out again.
    """

    def __init__(self, global_prefix: str = "test_"):
        self.global_prefix = global_prefix
        self._counters: dict[IdFamily, int] = {family: 0 for family in IdFamily}

    def new_id(self, prefix: str, family: IdFamily = IdFamily.OBJECT) -> str:
        self._counters[family] += 1
        return f"{self.global_prefix}{prefix}_{self._counters[family]}"

    def set_global_prefix(self, prefix: str) -> None:
        self.global_prefix = prefix

    def reset(self) -> None:
        for family in self._counters:
            self._counters[family] = 0
