import logging
import traceback
from typing import Any, Dict, Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from chainledger.core.errors import Conflict, Internal, InvalidInput, LedgerError

logger = logging.getLogger(__name__)


def _request_context(request: Request) -> Dict[str, Any]:
    client = request.client.host if request.client else "-"
    return {"method": request.method, "url": str(request.url), "client": client}


def error_response(exc: LedgerError, status_code: Optional[int] = None, **extra) -> JSONResponse:
    error = exc.to_dict()
    error.update(extra)
    return JSONResponse(
        status_code=status_code or exc.status_code,
        content={"success": False, "error": error},
    )


async def handle_ledger_error(request: Request, exc: LedgerError):
    ctx = _request_context(request)
    log = logger.error if exc.status_code >= 500 else logger.info
    log(f"[{exc.kind}] {ctx['method']} {ctx['url']} from {ctx['client']} -> {exc.status_code}: {exc.message}")
    return error_response(exc)


async def handle_validation_error(request: Request, exc: RequestValidationError):
    ctx = _request_context(request)
    logger.warning(f"[ValidationError] {ctx['method']} {ctx['url']} from {ctx['client']} -> 422: {exc.errors()}")
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return error_response(InvalidInput("Validation failed"), status_code=422, details=details)


async def handle_integrity_error(request: Request, exc: IntegrityError):
    ctx = _request_context(request)
    logger.warning(f"[IntegrityError] {ctx['method']} {ctx['url']} from {ctx['client']}: {exc.orig}")
    return error_response(Conflict("Resource conflicts with an existing record"))


async def handle_unexpected_error(request: Request, exc: Exception):
    ctx = _request_context(request)
    tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(
        f"[Unhandled Error] {ctx['method']} {ctx['url']} from {ctx['client']}\n"
        f"Exception Type: {type(exc).__name__}\n"
        f"Exception Message: {exc}\n\n"
        f"Full Stack Trace:\n{tb_str}"
    )
    return error_response(Internal())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, handle_ledger_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
