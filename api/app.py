# api/app.py

"""
FastAPI application exposing the spoofing check as a REST API.

Launch with: python3 spoofcheck.py --serve [--port 8080]
"""

import asyncio
import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from emailprotections.errors import InvalidDomainError, SpoofCheckError, TransportError
from emailprotections.resolver import (
    DEFAULT_RESOLVER,
    DEFAULT_TIMEOUT,
    PUBLIC_RESOLVERS,
    parse_resolver_address,
)
from emailprotections.spoofing import check_domain

logger = logging.getLogger("spoofcheck.api")

MAX_BULK_DOMAINS = 50
BULK_CONCURRENCY = 5

# --- App Setup ---

app = FastAPI(
    title="spoofcheck API",
    description="SPF and DMARC spoofability checks",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Request Models ---

class CheckRequest(BaseModel):
    domains: list[str]
    resolver: Optional[str] = None


def _resolver_or_400(resolver):
    resolver = (resolver or DEFAULT_RESOLVER).strip()
    resolver = PUBLIC_RESOLVERS.get(resolver.lower(), resolver)
    try:
        parse_resolver_address(resolver)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return resolver


async def _check(domain, resolver):
    loop = asyncio.get_event_loop()
    report = await loop.run_in_executor(
        None, check_domain, domain, resolver, DEFAULT_TIMEOUT
    )
    return report.to_dict()


# --- Endpoints ---

@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.get("/api/resolvers")
async def resolvers():
    """List the well-known public resolvers and the default."""
    return {"status": "ok", "default": DEFAULT_RESOLVER, "resolvers": PUBLIC_RESOLVERS}


@app.get("/api/check/{domain}")
async def check_single(
    domain: str,
    resolver: Optional[str] = Query(None, description="Resolver host:port or public resolver name"),
):
    """Check a single domain and return the result."""
    resolver = _resolver_or_400(resolver)
    try:
        result = await _check(domain.strip().lower(), resolver)
    except InvalidDomainError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TransportError as e:
        logger.error("Check failed for %s: %s", domain, e)
        raise HTTPException(status_code=502, detail=str(e))
    except SpoofCheckError as e:
        logger.error("Check failed for %s: %s", domain, e)
        return {"status": "error", "error": str(e), "domain": domain}
    return {"status": "ok", "result": result}


@app.post("/api/check")
async def check_bulk(req: CheckRequest):
    """Check several domains concurrently; per-domain failures are listed in ``errors``."""
    domains = [d.strip().lower() for d in req.domains if d.strip()]

    if not domains:
        return {"status": "error", "error": "No domains provided"}

    if len(domains) > MAX_BULK_DOMAINS:
        return {"status": "error", "error": f"Maximum {MAX_BULK_DOMAINS} domains per request"}

    resolver = _resolver_or_400(req.resolver)
    semaphore = asyncio.Semaphore(BULK_CONCURRENCY)

    async def check_one(d):
        async with semaphore:
            return await _check(d, resolver)

    raw_results = await asyncio.gather(
        *[check_one(d) for d in domains], return_exceptions=True
    )

    results = []
    errors = []
    for i, r in enumerate(raw_results):
        if isinstance(r, SpoofCheckError):
            errors.append({"domain": domains[i], "error": str(r)})
            logger.error("Check failed for %s: %s", domains[i], r)
        elif isinstance(r, BaseException):
            raise r
        else:
            results.append(r)

    return {
        "status": "ok",
        "count": len(results),
        "results": results,
        "errors": errors,
    }
