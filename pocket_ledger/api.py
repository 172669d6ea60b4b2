"""
FastAPI REST API Module

Provides REST API endpoints for account registration, login, deposits,
withdrawals, transfers and transaction history. Runs on port 8090 by default.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from fastapi import FastAPI, HTTPException, Depends, Query, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import uvicorn

from .accounts import Account, Transaction
from .config import LedgerConfig, get_config
from .history import filter_transactions, net_amount, NEWEST
from .ledger import LedgerService, OperationResult, ResultStatus, DEMO_ACCOUNTS
from .logging_config import setup_logging
from .storage import create_store, LedgerStoreError


# Pydantic models for API requests
class RegisterRequest(BaseModel):
    username: str
    password: str


class LoginRequest(BaseModel):
    username: str
    password: str


class AmountRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")


class TransferRequest(BaseModel):
    from_username: str
    to_username: str
    amount: str = Field(..., description="Decimal amount as string")


# Result status to HTTP status code
STATUS_CODES = {
    ResultStatus.ACCOUNT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ResultStatus.ACCOUNT_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ResultStatus.INVALID_AMOUNT: status.HTTP_400_BAD_REQUEST,
    ResultStatus.INVALID_USERNAME: status.HTTP_400_BAD_REQUEST,
    ResultStatus.SELF_TRANSFER: status.HTTP_400_BAD_REQUEST,
    ResultStatus.INSUFFICIENT_BALANCE: status.HTTP_409_CONFLICT,
    ResultStatus.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class LedgerSystem:
    """Wires the configured store and the ledger service together"""

    def __init__(self, config: Optional[LedgerConfig] = None):
        self.config = config or get_config()
        self.store = create_store(self.config)
        self.ledger = LedgerService(self.store, self.config)

        if self.config.seed_demo_accounts:
            self.ledger.seed_accounts(DEMO_ACCOUNTS)

    def close(self) -> None:
        self.store.close()


# Global ledger system instance
ledger_system = LedgerSystem()


# Create FastAPI app
app = FastAPI(
    title="Pocket Ledger API",
    description="Consumer banking ledger with atomic transfers and append-only history",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in get_config().api_cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Dependency to get ledger system
def get_ledger_system() -> LedgerSystem:
    return ledger_system


def transaction_to_response(transaction: Transaction) -> Dict[str, Any]:
    return {
        "id": transaction.id,
        "type": transaction.transaction_type.value,
        "amount": str(transaction.amount),
        "timestamp": transaction.timestamp.isoformat(),
        "description": transaction.description,
        "counterparty": transaction.counterparty,
    }


def account_to_response(account: Account) -> Dict[str, Any]:
    return {
        "username": account.username,
        "balance": str(account.balance),
        "created_at": account.created_at.isoformat(),
        "transaction_count": len(account.transactions),
    }


def result_to_response(result: OperationResult) -> Dict[str, Any]:
    """Raise the mapped HTTP error for a failed result, else serialise it"""
    if not result:
        raise HTTPException(status_code=STATUS_CODES[result.status], detail=result.status.value)

    return {
        "status": result.status.value,
        "account": account_to_response(result.account),
        "transactions": [transaction_to_response(t) for t in result.transactions],
    }


def _load_account(system: LedgerSystem, username: str) -> Account:
    try:
        account = system.ledger.get_account(username)
    except LedgerStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if not account:
        raise HTTPException(status_code=404, detail="Account not found")
    return account


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


# Account Endpoints
@app.post("/accounts", status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Register a new account"""
    result = system.ledger.create_account(request.username, request.password)
    return result_to_response(result)


@app.post("/auth/login")
def login(
    request: LoginRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Check credentials and return the account summary"""
    try:
        account = system.ledger.authenticate(request.username, request.password)
    except LedgerStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if not account:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return account_to_response(account)


@app.get("/accounts/{username}")
def get_account(
    username: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get account summary"""
    return account_to_response(_load_account(system, username))


@app.get("/accounts/{username}/exists")
def account_exists(
    username: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Check whether a username is registered"""
    try:
        return {"username": username, "exists": system.ledger.account_exists(username)}
    except LedgerStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))


@app.post("/accounts/{username}/deposit")
def deposit(
    username: str,
    request: AmountRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Deposit funds"""
    return result_to_response(system.ledger.deposit(username, request.amount))


@app.post("/accounts/{username}/withdraw")
def withdraw(
    username: str,
    request: AmountRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Withdraw funds"""
    return result_to_response(system.ledger.withdraw(username, request.amount))


@app.post("/transfers")
def transfer(
    request: TransferRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Transfer funds between two accounts"""
    result = system.ledger.transfer(request.from_username, request.to_username, request.amount)
    return result_to_response(result)


@app.get("/accounts/{username}/transactions")
def get_transactions(
    username: str,
    search: Optional[str] = None,
    transaction_type: Optional[str] = Query(None, alias="type", description="deposit, withdraw, transfer-sent, transfer-received or all"),
    order: str = Query(NEWEST, description="newest or oldest"),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get the filtered and sorted transaction history of an account"""
    account = _load_account(system, username)

    try:
        transactions = filter_transactions(account.transactions, search=search,
                                           transaction_type=transaction_type, order=order)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "username": username,
        "count": len(transactions),
        "total_count": len(account.transactions),
        "net_amount": str(net_amount(transactions)),
        "transactions": [transaction_to_response(t) for t in transactions],
    }


# System Information
@app.get("/")
async def root():
    """Root endpoint with system information"""
    return {
        "system": "Pocket Ledger",
        "version": "1.0.0",
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "accounts": "/accounts",
            "login": "/auth/login",
            "transfers": "/transfers"
        }
    }


# Run server function
def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server"""
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    uvicorn.run(
        "pocket_ledger.api:app",
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level="info"
    )
