import os

from dotenv import load_dotenv

# Carrega o .env da raiz do projeto
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./cupcake_store.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

# Sessão (token assinado, cookie ou Authorization: Bearer)
SESSION_SECRET = os.getenv("SESSION_SECRET", "")
SESSION_MAX_AGE_SECONDS = int(os.getenv("SESSION_MAX_AGE_SECONDS", str(7 * 24 * 60 * 60)))
SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE", "0" if IS_DEV else "1")

# Provedor de identidade (OIDC)
OIDC_ISSUER_URL = os.getenv("OIDC_ISSUER_URL", "https://replit.com/oidc").strip().rstrip("/")
OIDC_CLIENT_ID = os.getenv("OIDC_CLIENT_ID", "").strip()
OIDC_CLIENT_SECRET = os.getenv("OIDC_CLIENT_SECRET", "").strip()
OIDC_SCOPES = os.getenv("OIDC_SCOPES", "openid email profile offline_access").strip()
OIDC_DISCOVERY_TTL_SECONDS = int(os.getenv("OIDC_DISCOVERY_TTL_SECONDS", "3600"))

# SMS
SMS_PROVIDER = os.getenv("SMS_PROVIDER", "mock").strip().lower()
SMS_GATEWAY_URL = os.getenv("SMS_GATEWAY_URL", "").strip()
SMS_GATEWAY_TOKEN = os.getenv("SMS_GATEWAY_TOKEN", "").strip()

# Pedidos
# permissive: qualquer status -> qualquer status; strict: só avança na cadeia declarada
ORDER_STATUS_TRANSITIONS = os.getenv("ORDER_STATUS_TRANSITIONS", "permissive").strip().lower()
if ORDER_STATUS_TRANSITIONS not in {"permissive", "strict"}:
    ORDER_STATUS_TRANSITIONS = "permissive"

# trust: grava o total enviado pelo cliente; verify: recalcula e rejeita divergência
ORDER_TOTAL_POLICY = os.getenv("ORDER_TOTAL_POLICY", "trust").strip().lower()
if ORDER_TOTAL_POLICY not in {"trust", "verify"}:
    ORDER_TOTAL_POLICY = "trust"
