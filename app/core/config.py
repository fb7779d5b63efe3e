import os

# Detect environment (default to production)
ENV = os.getenv("APP_ENV", "production").lower()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./taskboard.db")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379")

# Outbound mail
SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_STARTTLS = os.getenv("SMTP_STARTTLS", "true").lower() in ("1", "true", "yes")
MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME", "Task Board")

# Calendar provider (client-credentials app registration)
AZURE_AD_CLIENT_ID = os.getenv("AZURE_AD_CLIENT_ID")
AZURE_AD_CLIENT_SECRET = os.getenv("AZURE_AD_CLIENT_SECRET")
AZURE_AD_TENANT_ID = os.getenv("AZURE_AD_TENANT_ID")
GRAPH_API_URL = os.getenv("GRAPH_API_URL", "https://graph.microsoft.com/v1.0")
GRAPH_SCOPE = "https://graph.microsoft.com/.default"

# Identity provider: resolves a bearer token to {id, email, role}
IDENTITY_API_URL = os.getenv("IDENTITY_API_URL", "http://localhost:8080/v1/me")

CRON_SECRET = os.getenv("CRON_SECRET")
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10"))

FRONTEND_ORIGINS = [
    o.strip()
    for o in os.getenv("FRONTEND_ORIGINS", "").split(",")
    if o.strip()
]
DEV_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
