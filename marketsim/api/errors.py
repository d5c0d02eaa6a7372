"""Mapping of domain errors to HTTP errors."""
from fastapi import HTTPException

from marketsim.domain.errors import LookupFailure, LookupTimeout, MarketSimError


def to_http_exception(error: Exception) -> HTTPException:
    if isinstance(error, LookupTimeout):
        return HTTPException(status_code=504, detail=str(error))
    if isinstance(error, LookupFailure):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, MarketSimError):
        return HTTPException(status_code=400, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
