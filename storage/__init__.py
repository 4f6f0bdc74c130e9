"""Storage package utilities."""

__all__ = ["DiscoveryStore", "probe"]


def __getattr__(name: str):
    if name == "DiscoveryStore":
        from storage.discoveries import DiscoveryStore

        return DiscoveryStore
    if name == "probe":
        from storage.diagnostics import probe

        return probe
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
