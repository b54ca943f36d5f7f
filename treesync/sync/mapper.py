"""Translation between local and remote path namespaces."""

from dataclasses import dataclass

from ..exceptions import MappingError


def _normalize_root(root: str) -> str:
    root = root.replace("\\", "/")
    if len(root) > 1:
        root = root.rstrip("/") or "/"
    return root


def _join(root: str, relative: str) -> str:
    if root.endswith("/"):
        return f"{root}{relative}"
    return f"{root}/{relative}"


@dataclass(frozen=True)
class PathMapper:
    """Maps paths below ``local_root`` to paths below ``remote_root`` and back.

    Immutable once created.

    Examples:
        >>> mapper = PathMapper("/home/user/docs", "/backup/docs")
        >>> mapper.to_remote("/home/user/docs/dir/a.txt")
        '/backup/docs/dir/a.txt'
        >>> mapper.to_local("/backup/docs/dir/a.txt")
        '/home/user/docs/dir/a.txt'
    """

    local_root: str
    remote_root: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "local_root", _normalize_root(self.local_root))
        object.__setattr__(self, "remote_root", _normalize_root(self.remote_root))

    @staticmethod
    def _relative(path: str, root: str) -> str:
        path = path.replace("\\", "/")
        prefix = root if root.endswith("/") else f"{root}/"
        if not path.startswith(prefix):
            raise MappingError(path, root)
        relative = path[len(prefix) :].rstrip("/")
        if not relative:
            raise MappingError(path, root)
        return relative

    def to_remote(self, local_path: str) -> str:
        """Translate a local path into the remote namespace.

        Raises:
            MappingError: If ``local_path`` is not below ``local_root``
        """
        return _join(self.remote_root, self._relative(local_path, self.local_root))

    def to_local(self, remote_path: str) -> str:
        """Translate a remote path into the local namespace.

        Raises:
            MappingError: If ``remote_path`` is not below ``remote_root``
        """
        return _join(self.local_root, self._relative(remote_path, self.remote_root))
