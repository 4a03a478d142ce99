"""Request and lock entries stored as files in the lock directory.

Every entry is an empty file whose name carries its whole identity::

    <name>__<node>__<id>__<created><suffix>

where ``suffix`` is ``.request`` for a pending request and ``.lock`` for a
held lock. Entries are never modified: they are created, listed and removed.
"""

import os
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator, Optional

from .errors import CleanupError, MalformedEntryError, ValidationError

logger = logging.getLogger(__name__)

SEPARATOR = '__'


class EntryKind(str, Enum):
    """Entry type, stored as the file suffix."""
    REQUEST = "request"
    LOCK = "lock"

    @property
    def suffix(self) -> str:
        return f".{self.value}"


def normalize_name(name: str) -> str:
    """Replace path separators so the lock name fits in one file name

    Trailing underscores are dropped: a name ending in ``_`` would run into
    the following separator and decode as a different name and node.
    """
    name = name.replace('/', '_')
    if os.sep != '/':
        name = name.replace(os.sep, '_')
    return name.rstrip('_')


def encode(name: str, node: str, id: str, created: int, kind: EntryKind) -> str:
    """Build the file name of an entry"""
    name = normalize_name(name)
    id = id.replace('-', '')
    for label, value in (('name', name), ('node', node), ('id', id)):
        if not value:
            raise ValidationError(f"entry {label} must not be empty")
        if SEPARATOR in value:
            raise ValidationError(f"entry {label} {value!r} must not contain '{SEPARATOR}'")
        if value.endswith('_'):
            raise ValidationError(f"entry {label} {value!r} must not end with '_'")
    return SEPARATOR.join([name, node, id, str(int(created))]) + EntryKind(kind).suffix


@dataclass(frozen=True)
class Entry:
    """A request or lock file in the lock directory."""
    directory: str
    name: str
    node: str
    id: str
    created: int
    kind: EntryKind
    # name of the file on disk, which may differ from the canonical encoding
    # for files written by other tools
    filename: Optional[str] = None

    def __post_init__(self):
        if self.filename is None:
            object.__setattr__(self, 'filename', encode(self.name, self.node, self.id, self.created, self.kind))

    @property
    def path(self) -> str:
        return os.path.join(self.directory, self.filename)

    def sort_key(self):
        return (self.created, self.filename)

    def remove(self):
        """Delete the backing file"""
        try:
            os.remove(self.path)
        except OSError as e:
            raise CleanupError(
                f"failed to remove {self.kind.value} {self.path}: {e} - please remove manually",
                path=self.path,
            ) from e
        logger.debug(f"removed {self.path}")

    def __str__(self):
        return self.path


def decode(path: str) -> Entry:
    """Parse an entry from its path"""
    directory, filename = os.path.split(path)
    for kind in EntryKind:
        if filename.endswith(kind.suffix):
            stem = filename[:-len(kind.suffix)]
            break
    else:
        raise MalformedEntryError(f"{path}: not a request or lock file")

    fields = stem.split(SEPARATOR)
    if len(fields) != 4 or not all(fields):
        raise MalformedEntryError(f"{path}: expected 4 fields, found {len(fields)}")

    name, node, id, created = fields
    if not created.isdigit():
        raise MalformedEntryError(f"{path}: invalid timestamp {created!r}")

    return Entry(directory=directory, name=name, node=node, id=id, created=int(created), kind=kind,
                 filename=filename)


class EntrySet:
    """A snapshot of the entries of a directory."""

    def __init__(self, entries: Iterable[Entry] = ()):
        self._entries = tuple(entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __repr__(self):
        return f"EntrySet({list(self._entries)!r})"

    def filter(self, accept: Callable[[Entry], bool]) -> 'EntrySet':
        return EntrySet(e for e in self._entries if accept(e))

    def with_kind(self, kind: EntryKind) -> 'EntrySet':
        return self.filter(lambda e: e.kind == kind)

    def with_name(self, name: str) -> 'EntrySet':
        return self.filter(lambda e: e.name == name)

    def with_node(self, node: str) -> 'EntrySet':
        return self.filter(lambda e: e.node == node)

    def oldest(self) -> Optional[Entry]:
        """Entry with the smallest timestamp, ties broken by file name"""
        if not self._entries:
            return None
        return min(self._entries, key=Entry.sort_key)

    def match(self, entry: Entry) -> 'EntrySet':
        """Other entries sharing the name or the node of ``entry``"""
        return self.filter(
            lambda e: e.path != entry.path and (e.name == entry.name or e.node == entry.node)
        )


def list_entries(directory: str) -> EntrySet:
    """Read all entries of ``directory``, skipping files that do not decode"""
    entries = []
    try:
        with os.scandir(directory) as it:
            for item in it:
                if not item.is_file():
                    continue
                try:
                    entries.append(decode(os.path.join(directory, item.name)))
                except MalformedEntryError as e:
                    logger.debug(f"skipping {e}")
    except OSError as e:
        logger.warning(f"unable to list lock dir {directory}: {e}")
        return EntrySet()
    return EntrySet(entries)


def requests(directory: str) -> EntrySet:
    return list_entries(directory).with_kind(EntryKind.REQUEST)


def locks(directory: str) -> EntrySet:
    return list_entries(directory).with_kind(EntryKind.LOCK)


def is_oldest(entry: Entry, entries: Optional[EntrySet] = None) -> bool:
    """Check whether no peer of ``entry`` was created before it.

    Peers are the other entries of the same kind sharing its name or its
    node; entries for unrelated names on unrelated nodes are ignored.
    """
    if entries is None:
        entries = list_entries(entry.directory).with_kind(entry.kind)
    key = entry.sort_key()
    return not any(peer.sort_key() < key for peer in entries.match(entry))


def create_entry(directory: str, name: str, node: str, id: str, created: int,
                 kind: EntryKind) -> Entry:
    """Write a new empty entry file, failing if the file already exists"""
    entry = Entry(
        directory=directory,
        name=normalize_name(name),
        node=node,
        id=id.replace('-', ''),
        created=int(created),
        kind=EntryKind(kind),
    )
    with open(entry.path, 'x', encoding='utf-8'):
        pass
    logger.debug(f"created {entry.path}")
    return entry
