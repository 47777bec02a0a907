"""Base form for validating JSON request bodies with wtforms."""

from typing import Any, Dict, Mapping, Optional, Set, Type, TypeVar

from werkzeug.datastructures import MultiDict
from wtforms import Form

from .exceptions import ValidationFailed

F = TypeVar('F', bound='JSONForm')


class JSONForm(Form):
    """A form populated from a JSON request body."""

    ALIASES: Dict[str, str] = {}
    """Maps JSON keys to field names, where they differ."""

    @classmethod
    def from_json(cls: Type[F], payload: Optional[Mapping[str, Any]]) -> F:
        """Build the form from a (camel-cased) JSON object."""
        data = MultiDict()
        for key, value in (payload or {}).items():
            if value is None:
                continue
            data[cls.ALIASES.get(key, key)] = \
                value if isinstance(value, str) else str(value)
        return cls(data)

    def validated(self: F) -> F:
        """Validate the form, or raise :class:`.ValidationFailed`."""
        if not self.validate():
            raise ValidationFailed('Invalid request', errors=self.errors)
        return self

    def provided(self, payload: Optional[Mapping[str, Any]]) -> Set[str]:
        """Names of the fields that are present (and not null) in a body."""
        names = {self.ALIASES.get(key, key)
                 for key, value in (payload or {}).items()
                 if value is not None}
        return {name for name in names if name in self._fields}
