#!/usr/bin/env python3
"""Market data API key setup script.

Validates Finnhub and TwelveData API keys with a test request and offers to
store them in the OS keychain.

Usage:
    1. Create free API keys at https://finnhub.io and https://twelvedata.com
    2. Run this script and paste each key when prompted (leave blank to skip)
    3. Store them in the keychain, or add the printed env vars to your .env file
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from integrations.exceptions import ProviderError
from integrations.finnhub_client import FinnhubClient
from integrations.market_data_protocol import Quote
from integrations.twelvedata_client import TwelveDataClient

TEST_SYMBOL = "AAPL"


def _offer_keychain_store(credentials: dict[str, str]) -> None:
    """Prompt the user to store credentials in the OS keychain."""
    from services.credential_manager import set_credential

    answer = input("\nStore these keys in the OS keychain? [Y/n] ").strip().lower()
    if answer in ("", "y", "yes"):
        for key, value in credentials.items():
            if set_credential(key, value):
                print(f"  Stored {key} in keychain")
            else:
                print(f"  Failed to store {key}")
    else:
        print("  Skipped keychain storage.")


def validate_finnhub_key(api_key: str) -> Quote:
    """Fetch a quote to prove the Finnhub key works.

    Raises:
        ProviderError: If the key is rejected or the request fails.
    """
    client = FinnhubClient(api_key=api_key)
    try:
        return client.get_quote(TEST_SYMBOL)
    finally:
        client.close()


def validate_twelvedata_key(api_key: str) -> dict:
    """Run a symbol search to prove the TwelveData key works.

    Raises:
        ProviderError: If the key is rejected or the request fails.
    """
    client = TwelveDataClient(api_key=api_key)
    try:
        return client.search_symbol(TEST_SYMBOL)
    finally:
        client.close()


def main():
    """Prompt for keys, validate them and offer keychain storage."""
    print("Market Data API Key Setup")
    print("=" * 50)
    print()
    print("Finnhub powers quotes, top movers, fundamentals and news.")
    print("TwelveData powers symbol search and price charts.")
    print("Leave a prompt blank to skip that provider.")
    print()

    validated: dict[str, str] = {}

    finnhub_key = input("Enter your Finnhub API key: ").strip()
    if finnhub_key:
        print("Validating Finnhub key...")
        try:
            quote = validate_finnhub_key(finnhub_key)
            print(f"  OK: {TEST_SYMBOL} last price {quote.price}")
            validated["FINNHUB_API_KEY"] = finnhub_key
        except ProviderError as e:
            print(f"  Finnhub validation failed: {e}")

    twelvedata_key = input("Enter your TwelveData API key: ").strip()
    if twelvedata_key:
        print("Validating TwelveData key...")
        try:
            result = validate_twelvedata_key(twelvedata_key)
            print(f"  OK: {len(result.get('data', []))} search results for {TEST_SYMBOL}")
            validated["TWELVEDATA_API_KEY"] = twelvedata_key
        except ProviderError as e:
            print(f"  TwelveData validation failed: {e}")

    if not validated:
        print()
        print("Error: No valid keys provided")
        sys.exit(1)

    print()
    print("Add to your .env file:")
    for key, value in validated.items():
        print(f"  {key}={value}")

    _offer_keychain_store(validated)


if __name__ == "__main__":
    main()
