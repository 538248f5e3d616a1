"""Global constants."""


class OAuth2GrantType:
    """OAuth2 grant types."""

    AUTHORIZATION_CODE = "authorization_code"
    REFRESH_TOKEN = "refresh_token"


class ResponseType:
    """Authorization endpoint response types."""

    CODE = "code"


class ClientAuthMethod:
    """Token endpoint client authentication methods."""

    NONE = "none"
    CLIENT_SECRET_POST = "client_secret_post"


class CodeChallengeMethod:
    """PKCE challenge methods; NONE marks a code issued without PKCE."""

    S256 = "S256"
    NONE = "NONE"


class DcrMode:
    """Dynamic client registration modes."""

    PROTECTED = "protected"
    OPEN = "open"


CLIENT_AUTH_METHODS: tuple[str, ...] = (
    ClientAuthMethod.NONE,
    ClientAuthMethod.CLIENT_SECRET_POST,
)

GRANT_TYPES: tuple[str, ...] = (
    OAuth2GrantType.AUTHORIZATION_CODE,
    OAuth2GrantType.REFRESH_TOKEN,
)

RESPONSE_TYPES: tuple[str, ...] = (ResponseType.CODE,)

CODE_CHALLENGE_METHODS: tuple[str, ...] = (CodeChallengeMethod.S256,)

TOKEN_TYPE_BEARER = "Bearer"
JWT_ALG = "RS256"

CODE_BYTES = 32
REFRESH_TOKEN_BYTES = 48
CLIENT_SECRET_BYTES = 48
CLIENT_ID_BYTES = 18
CLIENT_ID_PREFIX = "client_"

WILDCARD_REDIRECT_HOSTS: tuple[str, ...] = ("chat.openai.com", "chatgpt.com")
WILDCARD_REDIRECT_PATH_PREFIX = "/aip/g-"
WILDCARD_REDIRECT_PATH_SUFFIX = "/oauth/callback"
LOOPBACK_HOSTS: tuple[str, ...] = ("localhost", "127.0.0.1")

REDIS_AUTH_REQUEST_PREFIX = "oauth:req:"
REDIS_AUTH_CODE_PREFIX = "oauth:code:"
