from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

KeySet = tuple["SigningKey", ...]


def _text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value if value.strip() else None


@dataclass(frozen=True)
class SigningKey:
    """One RSA public key published by the issuer's JWKS endpoint."""

    kid: str
    kty: str
    use: str
    n: str
    e: str
    alg: str | None = None
    x5c: tuple[str, ...] = ()
    x5t: str | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "SigningKey | None":
        """Builds a key from a raw JWK record, or None when it is not usable for RS256 verification."""
        kid = _text(record.get("kid"))
        n = _text(record.get("n"))
        e = _text(record.get("e"))
        if record.get("kty") != "RSA" or record.get("use") != "sig":
            return None
        if not kid or not n or not e:
            return None

        raw_chain = record.get("x5c")
        chain: tuple[str, ...] = ()
        if isinstance(raw_chain, (list, tuple)):
            chain = tuple(cert for cert in raw_chain if isinstance(cert, str) and cert)

        return cls(
            kid=kid,
            kty="RSA",
            use="sig",
            n=n,
            e=e,
            alg=_text(record.get("alg")),
            x5c=chain,
            x5t=_text(record.get("x5t")),
        )

    @property
    def has_certificate_chain(self) -> bool:
        return bool(self.x5c)

    def to_jwk(self) -> dict[str, Any]:
        jwk: dict[str, Any] = {
            "kid": self.kid,
            "kty": self.kty,
            "use": self.use,
            "n": self.n,
            "e": self.e,
        }
        if self.alg:
            jwk["alg"] = self.alg
        if self.x5c:
            jwk["x5c"] = list(self.x5c)
        if self.x5t:
            jwk["x5t"] = self.x5t
        return jwk


def filter_eligible(
    records: Iterable[Mapping[str, Any] | SigningKey],
    *,
    require_x5c: bool = False,
) -> KeySet:
    """
    Keeps only records usable as RS256 signing keys, preserving their order.

    Already-parsed keys are re-checked rather than trusted, so filtering a
    filtered key set returns the same set.
    """
    eligible: list[SigningKey] = []
    for record in records:
        if isinstance(record, SigningKey):
            record = record.to_jwk()
        if not isinstance(record, Mapping):
            continue
        key = SigningKey.from_record(record)
        if key is None:
            continue
        if require_x5c and not key.has_certificate_chain:
            continue
        eligible.append(key)
    return tuple(eligible)
