"""pisync - interpolated PI Web API data on a shared time axis."""


def __getattr__(name):
    """Lazy import so that `fetch` does not pull in pyspark."""
    # pylint: disable=import-outside-toplevel
    if name == "fetch":
        from pisync.sources.osipi.osipi_splitter import fetch

        return fetch
    if name == "OsipiLakeflowConnect":
        from pisync.sources.osipi.osipi import OsipiLakeflowConnect

        return OsipiLakeflowConnect
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["fetch", "OsipiLakeflowConnect"]  # pylint: disable=undefined-all-variable
