"""Claims-based identity primitives.

An identity is a bag of typed claims tagged with the authentication type
(scheme) that produced it. Claim type names follow the WS-* URIs so that
identities stay interchangeable with other claims-aware consumers.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

XML_SCHEMA_STRING = "http://www.w3.org/2001/XMLSchema#string"
DEFAULT_ISSUER = "LOCAL AUTHORITY"


class ClaimTypes:
    """Well-known claim type URIs."""

    NAME_IDENTIFIER = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/nameidentifier"
    NAME = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/name"
    EMAIL = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/emailaddress"
    ROLE = "http://schemas.microsoft.com/ws/2008/06/identity/claims/role"


class LineClaimTypes:
    """Claim types namespaced to the LINE provider."""

    NAME = "urn:line:name"
    PROFILE_PICTURE = "urn:line:profilepicture"
    ACCESS_TOKEN = "urn:line:accesstoken"


@dataclass(frozen=True)
class Claim:
    """A single (type, value, issuer) assertion."""

    type: str
    value: str
    value_type: str = XML_SCHEMA_STRING
    issuer: str = DEFAULT_ISSUER
    original_issuer: Optional[str] = None

    def __post_init__(self) -> None:
        if self.original_issuer is None:
            object.__setattr__(self, "original_issuer", self.issuer)


class ClaimsIdentity:
    """A mutable set of claims produced by one authentication type."""

    def __init__(
        self,
        authentication_type: Optional[str] = None,
        claims: Optional[Iterable[Claim]] = None,
        name_claim_type: str = ClaimTypes.NAME,
        role_claim_type: str = ClaimTypes.ROLE,
    ):
        self.authentication_type = authentication_type
        self.name_claim_type = name_claim_type
        self.role_claim_type = role_claim_type
        self._claims: list[Claim] = list(claims or [])

    @property
    def claims(self) -> list[Claim]:
        return list(self._claims)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.authentication_type)

    @property
    def name(self) -> Optional[str]:
        claim = self.find_first(self.name_claim_type)
        return claim.value if claim else None

    def add_claim(self, claim: Claim) -> None:
        self._claims.append(claim)

    def add_claims(self, claims: Iterable[Claim]) -> None:
        self._claims.extend(claims)

    def remove_claim(self, claim: Claim) -> None:
        """Remove one claim.

        Raises:
            ValueError: If the claim is not part of this identity
        """
        self._claims.remove(claim)

    def find_all(self, claim_type: str) -> list[Claim]:
        return [c for c in self._claims if c.type == claim_type]

    def find_first(self, claim_type: str) -> Optional[Claim]:
        for claim in self._claims:
            if claim.type == claim_type:
                return claim
        return None

    def has_claim(self, claim_type: str, value: str) -> bool:
        return any(c.type == claim_type and c.value == value for c in self._claims)

    def with_authentication_type(self, authentication_type: str) -> "ClaimsIdentity":
        """Copy this identity under another authentication type, keeping its claims."""
        return ClaimsIdentity(
            authentication_type,
            self._claims,
            name_claim_type=self.name_claim_type,
            role_claim_type=self.role_claim_type,
        )

    def __iter__(self) -> Iterator[Claim]:
        return iter(list(self._claims))

    def __len__(self) -> int:
        return len(self._claims)

    def __repr__(self) -> str:
        return (
            f"ClaimsIdentity(authentication_type={self.authentication_type!r}, "
            f"claims={len(self._claims)})"
        )
