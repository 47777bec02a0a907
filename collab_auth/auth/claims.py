"""
Normalization of role claims carried in access tokens.

Tokens minted by this system carry a flat list of role names, but tokens from
an external identity provider nest roles under the realm
(``realm_access.roles``) or under each client
(``resource_access.<client>.roles``). Every shape is reduced here to a single
set of normalized role names, so that nothing downstream needs to know where
a token came from.
"""

from typing import Any, Callable, List, Mapping, Tuple, FrozenSet

from ..domain import role_set

Extractor = Callable[[Mapping, str], List[str]]


def _as_names(raw: Any) -> List[str]:
    """Coerce a raw claim value into a list of role names."""
    if raw is None:
        return []
    if isinstance(raw, str):
        return raw.split()
    if isinstance(raw, (list, tuple, set, frozenset)):
        return [str(o) for o in raw if o is not None]
    return [str(raw)]


def _flat(claims: Mapping, roles_claim: str) -> List[str]:
    return _as_names(claims.get(roles_claim))


def _realm(claims: Mapping, roles_claim: str) -> List[str]:
    realm_access = claims.get('realm_access')
    if not isinstance(realm_access, Mapping):
        return []
    return _as_names(realm_access.get('roles'))


def _per_client(claims: Mapping, roles_claim: str) -> List[str]:
    resource_access = claims.get('resource_access')
    if not isinstance(resource_access, Mapping):
        return []
    names: List[str] = []
    for client in resource_access.values():
        if isinstance(client, Mapping):
            names.extend(_as_names(client.get('roles')))
    return names


SHAPES: Tuple[Extractor, ...] = (_flat, _realm, _per_client)
"""Known claim shapes, in the order they are consulted."""


def extract_roles(claims: Mapping, roles_claim: str = 'roles') \
        -> FrozenSet[str]:
    """
    Get the set of role names asserted by a decoded token.

    Parameters
    ----------
    claims : dict
        Decoded token payload.
    roles_claim : str
        Name of the flat roles claim (default: ``roles``).

    Returns
    -------
    frozenset
        Normalized role names from every recognized shape.

    """
    names: List[str] = []
    for extract in SHAPES:
        names.extend(extract(claims, roles_claim))
    return role_set(names)
