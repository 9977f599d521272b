# --- START OF FILE models.py ---

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Iterator, Optional, Tuple, Union


class HealthState(str, Enum):
    ONLINE = "ONLINE"
    DEGRADED = "DEGRADED"
    FAULTED = "FAULTED"
    OFFLINE = "OFFLINE"
    UNAVAIL = "UNAVAIL"
    REMOVED = "REMOVED"

    @classmethod
    def from_token(cls, token: str) -> 'HealthState':
        """Maps a state column token to a HealthState. Unknown tokens raise ValueError."""
        try:
            return cls(token)
        except ValueError:
            raise ValueError(f"Unknown health state: '{token}'") from None


class RaidLevel(Enum):
    Z1 = 1
    Z2 = 2
    Z3 = 3


class SpareStatus(str, Enum):
    AVAIL = "AVAIL"
    INUSE = "INUSE"


# --- Advisory ---
@dataclass(frozen=True)
class Importable:
    message: str

    @property
    def is_importable(self) -> bool:
        return True


@dataclass(frozen=True)
class NotImportable:
    message: str

    @property
    def is_importable(self) -> bool:
        return False


Advisory = Union[Importable, NotImportable]


# --- Device Tree ---
@dataclass(frozen=True)
class DiskLine:
    path: PurePosixPath
    state: Optional[HealthState] # None only for spare/cache entries printed without a state
    note: Optional[str] = None # e.g. "missing device", "corrupted data"
    spare_status: Optional[SpareStatus] = None


@dataclass(frozen=True)
class Naked:
    disk: DiskLine


@dataclass(frozen=True)
class Mirror:
    disks: Tuple[DiskLine, ...]
    name: Optional[str] = None # "mirror-0"
    state: Optional[HealthState] = None


@dataclass(frozen=True)
class RaidZ:
    level: RaidLevel
    disks: Tuple[DiskLine, ...]
    name: Optional[str] = None # "raidz2-0"
    state: Optional[HealthState] = None


@dataclass(frozen=True)
class Spare:
    disk: DiskLine


@dataclass(frozen=True)
class Log:
    disk: DiskLine


@dataclass(frozen=True)
class Cache:
    disk: DiskLine


Vdev = Union[Naked, Mirror, RaidZ, Spare, Log, Cache]


@dataclass(frozen=True)
class DeviceTree:
    # The pool's own summary line inside `config:`
    name: str
    state: HealthState
    # Top-level vdevs in the order the tool listed them
    vdevs: Tuple[Vdev, ...]
    note: Optional[str] = None

    def __iter__(self) -> Iterator[Vdev]:
        return iter(self.vdevs)

    def __len__(self) -> int:
        return len(self.vdevs)

    def disks(self) -> Iterator[DiskLine]:
        """Yields every leaf device in document order."""
        for vdev in self.vdevs:
            if isinstance(vdev, (Mirror, RaidZ)):
                yield from vdev.disks
            else:
                yield vdev.disk


@dataclass(frozen=True)
class Pool:
    name: str
    id: int
    health: HealthState
    advisory: Advisory
    topology: DeviceTree
    status_message: Optional[str] = None
    see_also: Optional[str] = None # Absolute URL, checked for a scheme and host when built
    config_note: Optional[str] = None # Free text printed after the device list

    @property
    def is_importable(self) -> bool:
        return self.advisory.is_importable

    def import_target(self) -> str:
        """The identifier to hand to `zpool import`. Ids stay unique where names may not."""
        return str(self.id)


def find_disk(pool: Pool, path) -> Optional[DiskLine]:
    """Returns the first leaf device of pool whose path equals path, or None."""
    wanted = PurePosixPath(path)
    for disk in pool.topology.disks():
        if disk.path == wanted:
            return disk
    return None

# --- END OF FILE models.py ---
