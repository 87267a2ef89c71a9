"""Race your own strategies: any async (token) -> text callable works."""

import asyncio

import httpx

from racefetch import CancellationToken, RaceConfig, RaceCoordinator, Strategy, ValidationGate

MIRRORS = [
    "https://mirror-a.example.com/feed.json",
    "https://mirror-b.example.com/feed.json",
]


def make_mirror(url):
    async def fetch(token: CancellationToken) -> str:
        # Lost the race before starting? Don't open a connection at all.
        token.raise_if_cancelled()
        async with httpx.AsyncClient(timeout=10) as client:
            resp = await client.get(url)
        # A sibling may have won while we were downloading.
        token.raise_if_cancelled()
        resp.raise_for_status()
        return resp.text

    return Strategy(name=url.split("//")[1].split(".")[0], operation=fetch)


# Reject empty bodies and HTML error pages
json_gate = ValidationGate(lambda text: text.lstrip().startswith(("{", "[")), name="json")


async def main():
    coordinator = RaceCoordinator([make_mirror(u) for u in MIRRORS], json_gate)

    # Ctrl-C style cancellation from elsewhere in the program
    stop = CancellationToken()
    asyncio.get_running_loop().call_later(30, stop.cancel)

    result = await coordinator.acquire("feed.json", RaceConfig(external_cancellation=stop))
    print(f"{result.winner}: {len(result.text)} bytes")


if __name__ == "__main__":
    asyncio.run(main())
