import os

# ✅ Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./chefdhundo.db")
RUN_MIGRATIONS = os.getenv("RUN_MIGRATIONS", "0") == "1"

# ✅ Razorpay
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID") or os.getenv("NEXT_PUBLIC_RAZORPAY_KEY_ID") or ""
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET", "")
RAZORPAY_TIMEOUT_SECONDS = float(os.getenv("RAZORPAY_TIMEOUT_SECONDS", "5"))

# ✅ Identity provider
IDENTITY_JWT_KEY = os.getenv("IDENTITY_JWT_KEY")
IDENTITY_JWT_ALGORITHM = os.getenv("IDENTITY_JWT_ALGORITHM", "RS256")
IDENTITY_WEBHOOK_SECRET = os.getenv("IDENTITY_WEBHOOK_SECRET")

# ✅ HTTP
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]
CREATE_ORDER_RATE_LIMIT = int(os.getenv("CREATE_ORDER_RATE_LIMIT", "20"))

# ✅ Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
