"""Helpers for PostgreSQL connection parameters and parallel table tasks."""

from __future__ import annotations

import os
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, Iterable, Mapping, Optional


def disable_default_ssl(params: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Append ``sslmode=disable`` unless sslmode is given or PGSSLMODE is set.

    PostgreSQL renegotiates encryption after a while by default, which some
    TLS clients do not support; SSL is therefore off unless asked for.
    """
    if any(part.startswith("sslmode=") for part in params.split()):
        return params
    env = os.environ if environ is None else environ
    if "PGSSLMODE" in env:
        return params
    return params + " sslmode=disable"


def strip_prefix_from_connection_params(params: str) -> tuple[str, str]:
    """Remove ``prefix=...`` from the params; return (params, table prefix).

    The prefix defaults to ``osm_``, ``NONE`` means no prefix, and a prefix
    always ends with an underscore.
    """
    parts = params.split()
    prefix = ""
    for i, part in enumerate(parts):
        if part.startswith("prefix="):
            prefix = part.replace("prefix=", "", 1)
            params = " ".join(parts[:i] + parts[i + 1:])
            break
    if prefix == "NONE":
        return params, ""
    if not prefix:
        prefix = "osm_"
    if not prefix.endswith("_"):
        prefix += "_"
    return params, prefix


def run_parallel(tasks: Iterable[Callable[[], object]], workers: int) -> None:
    """Run the tasks in ``workers`` threads; re-raise the first error."""
    tasks = list(tasks)
    if not tasks:
        return
    executor = ThreadPoolExecutor(max_workers=max(1, workers))
    try:
        futures = [executor.submit(task) for task in tasks]
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        for future in done:
            error = future.exception()
            if error is not None:
                raise error
    finally:
        executor.shutdown(wait=False, cancel_futures=True)