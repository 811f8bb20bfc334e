# emailprotections/report.py

import csv
import json
import logging
import pandas as pd
from colorama import init, Fore, Style

# Initialize colorama
init()

logger = logging.getLogger("spoofcheck.report")

SYMBOLS = {
    "good": "[+]",
    "bad": "[-]",
    "warning": "[?]",
    "info": "[*]",
    "indifferent": "[*]",
}


def output_message(symbol, message, level="info"):
    """Generic function to print messages with different colors and symbols based on the level."""
    colors = {
        "good": Fore.GREEN + Style.BRIGHT,
        "warning": Fore.YELLOW + Style.BRIGHT,
        "bad": Fore.RED + Style.BRIGHT,
        "indifferent": Fore.BLUE + Style.BRIGHT,
        "error": Fore.RED + Style.BRIGHT + "!!! ",
        "info": Fore.WHITE + Style.BRIGHT,
    }
    color = colors.get(level, Fore.WHITE + Style.BRIGHT)
    print(color + f"{symbol} {message}" + Style.RESET_ALL)


def printer(**kwargs):
    """Print one domain's SPF/DMARC findings and the spoofing verdict."""
    domain = kwargs.get("DOMAIN")
    resolver = kwargs.get("DNS_RESOLVER")
    findings = kwargs.get("FINDINGS", [])

    output_message("[*]", f"Processing domain: {domain}", "info")
    output_message("[*]", f"DNS resolver: {resolver}", "indifferent")

    for finding in findings:
        level = finding.get("level", "info")
        output_message(SYMBOLS.get(level, "[*]"), finding.get("message", ""), level)

    print()  # Padding


def print_error(domain, error):
    output_message("[!]", f"{domain}: {error}", "error")


def write_to_excel(data, file_name="output.xlsx"):
    """Writes results to an Excel file, replacing any existing file."""
    flat_data = _flatten_results(data)
    logger.debug("Writing %d results to %s", len(flat_data), file_name)
    pd.DataFrame(flat_data).to_excel(file_name, index=False)


def write_to_csv(data, file_name="output.csv"):
    """Writes results to a CSV file."""
    flat_data = _flatten_results(data)
    if not flat_data:
        return
    logger.debug("Writing %d results to %s", len(flat_data), file_name)

    fieldnames = list(flat_data[0].keys())
    with open(file_name, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(flat_data)


def output_json(results):
    """Output results as JSON to stdout."""
    print(json.dumps(results, indent=2, default=str))


def _flatten_results(data):
    """Flatten results for tabular output (findings dropped, lists joined)."""
    flat = []
    for result in data:
        row = {}
        for k, v in result.items():
            if k == "FINDINGS":
                continue
            elif isinstance(v, list):
                row[k] = " ".join(str(item) for item in v)
            elif isinstance(v, dict):
                row[k] = str(v)
            else:
                row[k] = v
        flat.append(row)
    return flat
