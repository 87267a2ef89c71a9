"""Fetch a sitemap: race every configured strategy and print the winner."""

import asyncio

from racefetch import RaceConfig, RaceFailure, fetch_sitemap_text


async def main():
    config = RaceConfig(per_strategy_timeout=10, overall_timeout=20)
    try:
        result = await fetch_sitemap_text("https://www.python.org/sitemap.xml", config)
    except RaceFailure as e:
        print(f"No strategy succeeded ({e.cause})")
        for name, reason in e.per_strategy_reasons:
            print(f"  {name}: {reason}")
        return

    print(f"{result.winner} won in {result.elapsed:.2f}s")
    print(result.text[:500])


asyncio.run(main())
