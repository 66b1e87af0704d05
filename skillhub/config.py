"""
SkillHub Configuration
Record store, session, payment gateway and remote function settings
"""

import os

# Record store (MongoDB)
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "skillhub_db")

# Session provider (HS256 JWTs issued by the hosted auth service)
SESSION_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
SESSION_JWT_AUDIENCE = os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")
SESSION_JWT_ALGORITHM = "HS256"

# Razorpay (read at call time by the payment functions)
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET")

# Remote functions (order creation + payment verification)
FUNCTIONS_BASE_URL = os.getenv("FUNCTIONS_BASE_URL", "http://localhost:8000/functions/v1")
FUNCTIONS_PREFIX = "/functions/v1"

# Timeouts
REMOTE_CALL_TIMEOUT_SECONDS = float(os.getenv("REMOTE_CALL_TIMEOUT_SECONDS", "30"))
# Must stay below REMOTE_CALL_TIMEOUT_SECONDS
GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "20"))

# Orders
ORDER_CURRENCY = "INR"
MAX_ORDER_AMOUNT_PAISE = 10_000_000
RECEIPT_MAX_LENGTH = 40  # Razorpay rejects longer receipts

# Learning progress steps (percent)
PROGRESS_STEPS = (0, 25, 50, 75, 100)

# CORS for the remote functions
CORS_ALLOW_ORIGIN = "*"
CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
