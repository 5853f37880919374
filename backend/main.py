from fastapi import FastAPI
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from core.logging_config import configure_logging
from db.database import create_db_and_tables
from routers.departments import router as departments_router, pos_router
from routers.inventory import router as inventory_router
from routers.reconciliation import router as reconciliation_router
from routers.transfers import router as transfers_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await create_db_and_tables()
    yield


app = FastAPI(
    title="Department Stock API",
    description="API for department stock ledgers, transfers and reconciliation",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Departments and POS terminals
app.include_router(departments_router, prefix="/departments", tags=["departments"])
app.include_router(pos_router, prefix="/pos", tags=["pos"])

# Stock ledger
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
app.include_router(transfers_router, prefix="/transfers", tags=["transfers"])
app.include_router(reconciliation_router, prefix="/reconciliation", tags=["reconciliation"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
