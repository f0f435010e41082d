"""
Exception hierarchy untuk coordination recipes.

Semua error dari coordination service di-map ke salah satu class di sini,
supaya recipes tidak perlu tahu client mana yang dipakai (kazoo / in-memory).
"""


class CoordinationError(Exception):
    """Base class untuk semua coordination errors"""


class CoordinationUnavailable(CoordinationError):
    """
    Connectivity atau session hilang.

    Tidak di-retry di layer ini: caller harus re-establish session
    lalu restart operasi dari awal.
    """


class NoNodeError(CoordinationError):
    """Node yang diminta tidak ada"""


class NodeExistsError(CoordinationError):
    """Node dengan path yang sama sudah ada"""


class BadVersionError(CoordinationError):
    """Expected version tidak cocok dengan version node saat ini"""


class NotEmptyError(CoordinationError):
    """Node masih punya children sehingga tidak bisa dihapus"""


class NodeVanished(CoordinationError):
    """
    Node milik participant sendiri hilang dari sibling set.
    Biasanya berarti session hilang di tengah operasi.
    """

    def __init__(self, name: str, root: str = ""):
        self.name = name
        self.root = root
        where = f" under {root}" if root else ""
        super().__init__(f"Own node {name} vanished{where}")


class CapacityInvariantViolated(CoordinationError):
    """Jumlah item di queue berada di luar range [0, capacity]"""

    def __init__(self, count: int, capacity: int):
        self.count = count
        self.capacity = capacity
        super().__init__(f"Observed {count} items, capacity is {capacity}")


class LockTimeout(CoordinationError):
    """Lock tidak berhasil di-acquire dalam timeout yang diberikan"""


class QueueTimeout(CoordinationError):
    """Enqueue / dequeue tidak selesai dalam timeout yang diberikan"""
