from typing import Optional
from collections.abc import Iterator, Mapping, MutableMapping
from .exceptions import InvalidInput


class VaultEntries(MutableMapping[str, str]):
    """Decrypted name→secret mapping of a keychain.

    Names and secrets are both plain strings. Every successful mutation
    marks the mapping as changed, so the owner knows the sealed form is
    stale; removing an absent name is a no-op and leaves the flag alone.
    """

    __slots__ = ('_data', '_changed')

    def __init__(
        self,
        data: Optional[Mapping[str, str]] = None,
        changed: bool = False
    ) -> None:
        self._data: dict[str, str] = {}
        if data is not None:
            for name, value in data.items():
                self._validate(name, value)
                self._data[name] = value
        self._changed = changed

    def __repr__(self) -> str:
        # secret values are never rendered
        return (
            f'<VaultEntries [changed:{self._changed}] '
            f'names={sorted(self._data)!r}>'
        )

    @staticmethod
    def _validate(name: str, value: str) -> None:
        """Validate an entry before storing it.

        Raises:
            InvalidInput: If name is empty, or either part is not a string
                encodable as UTF-8.
        """
        if not isinstance(name, str) or not name:
            raise InvalidInput("Entry name must be a non-empty string")
        if not isinstance(value, str):
            raise InvalidInput(f"Value for {name!r} must be a string")
        try:
            name.encode("utf-8")
            value.encode("utf-8")
        except UnicodeEncodeError:
            raise InvalidInput("Entry name and value must be valid UTF-8 text") from None

    # --- Properties ---

    @property
    def is_changed(self) -> bool:
        return self._changed

    @is_changed.setter
    def is_changed(self, value: bool) -> None:
        self._changed = value

    @property
    def empty(self) -> bool:
        return not self._data

    def changed(self) -> None:
        self._changed = True

    def discard(self, name: str) -> bool:
        """Remove ``name`` if present, reporting whether it existed."""
        if name in self._data:
            del self._data[name]
            self._changed = True
            return True
        return False

    def to_dict(self) -> dict[str, str]:
        """Return a plain copy of the mapping (for serialization)."""
        return dict(self._data)

    # --- Magic Methods ---

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __contains__(self, name: object) -> bool:
        return name in self._data

    def __getitem__(self, name: str) -> str:
        return self._data[name]

    def __setitem__(self, name: str, value: str) -> None:
        self._validate(name, value)
        self._data[name] = value
        self._changed = True

    def __delitem__(self, name: str) -> None:
        if not self.discard(name):
            raise KeyError(name)
