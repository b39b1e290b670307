import logging
import os
from pathlib import Path
from typing import Set, Tuple
from mediamirror.domain.errors import CyclicDirectory, NotADirectory
from mediamirror.domain.models import DirectoryEntry, FileEntry

logger = logging.getLogger(__name__)


def file_extension(name: str) -> str:
    """Lowercased text after the last dot, without the dot ('' when there is none)."""
    return Path(name).suffix.lstrip(".").lower()


class DirectoryInventory:
    """Recursively snapshots a directory into a DirectoryEntry tree.

    Entries are sorted by name so the same tree always yields the same
    structure. Files of a level come first, then its subdirectories.
    """

    def inventory(self, root: Path) -> DirectoryEntry:
        root = Path(root)
        if not root.is_dir():
            raise NotADirectory(root)
        root = Path(os.path.abspath(root))
        tree = self._scan(root, root.name, set())
        logger.debug(f"Inventory of {root}: {sum(1 for _ in tree.iter_files())} files")
        return tree

    def _scan(self, path: Path, relative_path: str, ancestors: Set[Tuple[int, int]]) -> DirectoryEntry:
        st = path.stat()
        identity = (st.st_dev, st.st_ino)
        if identity in ancestors:
            raise CyclicDirectory(path)
        ancestors = ancestors | {identity}

        files = []
        subdirs = []
        for name in sorted(os.listdir(path)):
            entry_path = path / name
            if entry_path.is_dir():
                subdirs.append(entry_path)
            else:
                files.append(FileEntry(
                    name=name,
                    absolute_path=entry_path,
                    relative_path=f"{relative_path}/{name}",
                    extension=file_extension(name),
                ))

        children = list(files)
        for subdir in subdirs:
            children.append(self._scan(subdir, f"{relative_path}/{subdir.name}", ancestors))

        return DirectoryEntry(
            name=path.name,
            absolute_path=path,
            relative_path=relative_path,
            children=children,
        )
