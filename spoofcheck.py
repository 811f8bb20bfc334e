#! /usr/bin/env python3

# spoofcheck.py
import argparse
import asyncio
import logging
import os
import sys
from emailprotections import report
from emailprotections.errors import SpoofCheckError
from emailprotections.resolver import (
    DEFAULT_RESOLVER,
    DEFAULT_TIMEOUT,
    PUBLIC_RESOLVERS,
    parse_resolver_address,
)
from emailprotections.spoofing import check_domain

logger = logging.getLogger("spoofcheck")


def resolver_argument(value):
    """argparse type: a named public resolver or a ``host[:port]`` address."""
    value = PUBLIC_RESOLVERS.get(value.strip().lower(), value.strip())
    try:
        parse_resolver_address(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))
    return value


def env_defaults():
    """Read SPOOFCHECK_RESOLVER / SPOOFCHECK_TIMEOUT, falling back to built-in defaults."""
    resolver = os.environ.get("SPOOFCHECK_RESOLVER", "").strip() or DEFAULT_RESOLVER
    try:
        resolver = resolver_argument(resolver)
    except argparse.ArgumentTypeError as e:
        logger.warning("Ignoring SPOOFCHECK_RESOLVER: %s", e)
        resolver = DEFAULT_RESOLVER

    timeout = DEFAULT_TIMEOUT
    raw_timeout = os.environ.get("SPOOFCHECK_TIMEOUT", "").strip()
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            logger.warning("Ignoring SPOOFCHECK_TIMEOUT=%r: not a number", raw_timeout)
    return resolver, timeout


async def process_domain(domain, resolver=DEFAULT_RESOLVER, timeout=DEFAULT_TIMEOUT):
    """Check one domain in the default thread pool and return the result dict."""
    loop = asyncio.get_event_loop()
    result = await loop.run_in_executor(None, check_domain, domain, resolver, timeout)
    return result.to_dict()


async def process_domains(domains, output, resolver=DEFAULT_RESOLVER,
                          timeout=DEFAULT_TIMEOUT, concurrency=10):
    """Process multiple domains with controlled concurrency using asyncio.

    Returns ``(results, failed)`` where ``failed`` counts domains whose check
    raised.
    """
    semaphore = asyncio.Semaphore(concurrency)
    results = []
    failed = 0

    async def process_with_semaphore(domain):
        async with semaphore:
            return await process_domain(domain, resolver, timeout)

    if output == "stdout":
        # For stdout, print results in input order
        for domain in domains:
            try:
                result = await process_with_semaphore(domain)
            except SpoofCheckError as e:
                logger.error("Failed to process %s: %s", domain, e)
                report.print_error(domain, e)
                failed += 1
                continue
            report.printer(**result)
            results.append(result)
    else:
        # For file outputs, gather all results
        tasks = [process_with_semaphore(d) for d in domains]
        gathered = await asyncio.gather(*tasks, return_exceptions=True)
        for i, r in enumerate(gathered):
            if isinstance(r, SpoofCheckError):
                logger.error("Failed to process %s: %s", domains[i], r)
                failed += 1
            elif isinstance(r, BaseException):
                raise r
            else:
                results.append(r)

    return results, failed


def main():
    env_resolver, env_timeout = env_defaults()

    parser = argparse.ArgumentParser(
        description="spoofcheck - decide whether a domain's email can be spoofed "
        "by evaluating its SPF and DMARC records."
    )

    # --- Mode selection ---
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Launch the REST API server",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Port for the web server (default: 8080, used with --serve)",
    )

    # --- Domain selection (not required if --serve) ---
    group = parser.add_mutually_exclusive_group(required=False)
    group.add_argument("-d", type=str, help="Single domain to process.")
    group.add_argument(
        "-iL", type=str, help="File containing a list of domains to process."
    )
    parser.add_argument(
        "-r",
        "--dns-resolver",
        type=resolver_argument,
        default=env_resolver,
        help="DNS resolver as host:port, e.g. 8.8.8.8:53, or one of "
        f"{', '.join(PUBLIC_RESOLVERS)} (default: {env_resolver})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=env_timeout,
        help=f"Per-query DNS timeout in seconds (default: {env_timeout})",
    )
    parser.add_argument(
        "-o",
        type=str,
        choices=["stdout", "json", "csv", "xls"],
        default="stdout",
        help="Output format: stdout, json, csv, or xls (default: stdout).",
    )
    parser.add_argument(
        "-c",
        "--concurrency",
        type=int,
        default=10,
        help="Maximum concurrent domain checks (default: 10)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose/debug logging output",
    )

    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    # --- Web server mode ---
    if args.serve:
        import uvicorn
        from api.app import app as web_app

        print("\nspoofcheck API")
        print(f"   http://localhost:{args.port}")
        print(f"   API docs: http://localhost:{args.port}/docs\n")
        uvicorn.run(web_app, host="0.0.0.0", port=args.port, log_level="info")
        return 0

    # --- CLI mode (requires -d or -iL) ---
    if not args.d and not args.iL:
        parser.error("CLI mode requires -d or -iL (or use --serve for web mode)")

    if args.d:
        domains = [args.d]
    elif args.iL:
        with open(args.iL, "r") as file:
            domains = [line.strip() for line in file if line.strip()]

    results, failed = asyncio.run(
        process_domains(
            domains,
            args.o,
            resolver=args.dns_resolver,
            timeout=args.timeout,
            concurrency=args.concurrency,
        )
    )

    if args.o == "json" and results:
        report.output_json(results)
    elif args.o == "csv" and results:
        report.write_to_csv(results)
        print("Results written to output.csv")
    elif args.o == "xls" and results:
        report.write_to_excel(results)
        print("Results written to output.xlsx")

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
