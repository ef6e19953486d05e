"""Credentials for the DC/OS login endpoint.

Signs the short-lived RS256 assertion a service account exchanges for an
authentication token, and loads the alternative static token from a file.
"""

import datetime
from pathlib import Path

import jwt
import structlog
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.hazmat.primitives.serialization import load_pem_private_key

from .errors import ExpiredTokenError, SigningError
from .types import AuthToken, ServiceAccount

logger = structlog.get_logger(__name__)

# How long a login assertion stays valid after it is signed.
LOGIN_ASSERTION_TTL = datetime.timedelta(minutes=5)

SIGNING_ALGORITHM = "RS256"


def sign(account: ServiceAccount, now: datetime.datetime | None = None) -> str:
    """Sign a login assertion for a service account.

    Args:
        account: Service account whose private key signs the assertion.
        now: Current time; defaults to the current UTC time.

    Returns:
        Compact JWT carrying ``uid`` and ``exp`` claims.

    Raises:
        SigningError: If the key is unusable or signing fails.
    """
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    claims = {
        "uid": account.account_id,
        "exp": now + LOGIN_ASSERTION_TTL,
    }
    try:
        return jwt.encode(claims, account.private_key, algorithm=SIGNING_ALGORITHM)
    except (jwt.PyJWTError, TypeError, ValueError) as exc:
        msg = f"cannot sign login assertion for {account.account_id}: {exc}"
        raise SigningError(msg) from exc


def service_account_from_pem(account_id: str, pem: bytes) -> ServiceAccount:
    """Build a ServiceAccount from a PEM-encoded RSA private key.

    Raises:
        SigningError: If the PEM data is malformed or not an RSA key.
    """
    try:
        key = load_pem_private_key(pem, password=None)
    except (ValueError, TypeError) as exc:
        msg = f"malformed private key for service account {account_id}"
        raise SigningError(msg) from exc
    if not isinstance(key, RSAPrivateKey):
        msg = f"private key for service account {account_id} is not an RSA key"
        raise SigningError(msg)
    return ServiceAccount(account_id=account_id, private_key=key)


def load_service_account(account_id: str, key_file: str | Path) -> ServiceAccount:
    """Read a service account private key from disk.

    Raises:
        FileNotFoundError: If key_file does not exist.
        SigningError: If the key is malformed.
    """
    path = Path(key_file)
    if not path.exists():
        msg = f"Private key file not found: {key_file}"
        raise FileNotFoundError(msg)
    return service_account_from_pem(account_id, path.read_bytes())


def validate_jwt_not_expired(token: str) -> None:
    """Reject a static token whose ``exp`` claim lies in the past.

    The signature is not verified; only the cluster can do that. Opaque
    tokens, and JWTs without a numeric ``exp``, are accepted with a warning.

    Args:
        token: Token text as read from the token file.

    Raises:
        ExpiredTokenError: If the token's ``exp`` claim is in the past.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except jwt.DecodeError:
        logger.warning("Token is not a decodable JWT, skipping expiry check")
        return

    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        logger.warning("JWT has no numeric 'exp' claim, skipping expiry check", exp=exp)
        return

    now = datetime.datetime.now(datetime.timezone.utc).timestamp()
    if now >= exp:
        msg = f"DC/OS token has expired (exp={exp}, now={int(now)})"
        raise ExpiredTokenError(msg)

    logger.info("Token expiry validated", expires_in_seconds=int(exp - now))


def load_token_file(token_file: str | Path) -> AuthToken:
    """Read a static authentication token from disk.

    Raises:
        FileNotFoundError: If token_file does not exist.
        ExpiredTokenError: If the token is a JWT that has already expired.
    """
    path = Path(token_file)
    if not path.exists():
        msg = f"Token file not found: {token_file}"
        raise FileNotFoundError(msg)
    token = path.read_text().strip()
    validate_jwt_not_expired(token)
    return AuthToken(text=token)
