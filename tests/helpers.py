"""Shared identifiers and coordinates for the test suite."""

TENANT_ID = "tenant-1"
OTHER_TENANT_ID = "tenant-2"
EMPLOYEE_ID = 1
ADMIN_ID = 2

# Jakarta office
HQ_LAT = -6.2000
HQ_LNG = 106.8166

# Surabaya, ~660 km from HQ
FAR_LAT = -7.2575
FAR_LNG = 112.7521


class FakeEmbedder:
    """Image embedder backed by a url -> vector table."""

    def __init__(self) -> None:
        self.vectors: dict[str, list[float]] = {}
        self.fetched: list[str] = []

    async def fetch_bytes(self, url: str) -> bytes:
        self.fetched.append(url)
        if url not in self.vectors:
            raise RuntimeError(f"404 for {url}")
        return url.encode()

    async def embed(self, image: bytes) -> list[float]:
        return self.vectors[image.decode()]
