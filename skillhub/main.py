import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorClient

from skillhub import config
from skillhub.accounts.accounts_router import router as accounts_router
from skillhub.enrollment.enrollment_router import router as enrollment_router
from skillhub.learning.learning_router import router as learning_router
from skillhub.payments.payment_router import router as payment_router
from skillhub.store.schemas import create_all_indexes
from skillhub.system.health_router import router as health_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="SkillHub Learning Platform")

# MongoDB Configuration
client = AsyncIOMotorClient(config.MONGO_URL)
db = client[config.MONGO_DB_NAME]


@app.on_event("startup")
async def startup_event():
    await create_all_indexes(db)
    logger.info("🚀 SkillHub started")


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=[header.strip() for header in config.CORS_ALLOW_HEADERS.split(",")],
)


# ==================== ROUTER REGISTRATION ====================
app.include_router(payment_router, prefix=config.FUNCTIONS_PREFIX)
app.include_router(enrollment_router)
app.include_router(learning_router)
app.include_router(accounts_router)
app.include_router(health_router)
# ============================================================


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
