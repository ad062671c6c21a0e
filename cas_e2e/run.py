#!/usr/bin/env python3
"""
Scenario runner.

Discovers the Playwright scenario scripts, optionally waits for the CAS server
to answer, then runs each script in its own interpreter and reports the outcome.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence

import httpx
from pydantic import BaseModel

from .executor import ExecError, run_capture
from .settings import settings

logger = logging.getLogger(__name__)

class ScenarioResult(BaseModel):
    name: str
    path: str
    success: bool
    returncode: Optional[int] = None
    duration: float
    output: str = ""
    error: Optional[str] = None

def scenario_name(path: Path) -> str:
    return path.stem.replace("_", "-")

def discover_scenarios(directory: Path, names: Optional[Sequence[str]] = None) -> List[Path]:
    """List runnable scenario scripts, optionally narrowed to ``names``."""
    if not directory.is_dir():
        raise FileNotFoundError(f"Scenario directory not found: {directory}")

    scripts = sorted(p for p in directory.glob("*.py") if not p.name.startswith("_"))
    if not names:
        return scripts

    by_name = {}
    for p in scripts:
        by_name[p.stem] = p
        by_name[scenario_name(p)] = p

    selected = []
    for name in names:
        if name not in by_name:
            raise FileNotFoundError(f"Unknown scenario: {name}")
        if by_name[name] not in selected:
            selected.append(by_name[name])
    return selected

async def wait_for_cas(url: str, attempts: int, delay: float) -> bool:
    # CAS listens on a self-signed certificate in development
    async with httpx.AsyncClient(verify=False, timeout=10) as client:
        for attempt in range(1, attempts + 1):
            try:
                response = await client.get(url)
                if response.status_code < 500:
                    logger.info(f"CAS is ready at {url} (status {response.status_code})")
                    return True
                logger.info(f"#{attempt}: CAS answered {response.status_code}")
            except httpx.HTTPError as e:
                logger.info(f"#{attempt}: CAS not reachable yet: {e}")
            if attempt < attempts:
                await asyncio.sleep(delay)
    return False

async def run_scenario(path: Path, timeout: Optional[float] = None, echo: bool = True) -> ScenarioResult:
    name = scenario_name(path)
    logger.info(f"Running scenario {name}")
    started = time.monotonic()
    try:
        code, output = await run_capture(
            [sys.executable, str(path)],
            timeout=timeout,
            env=os.environ,
            on_line=(lambda line: print(f"[{name}] {line}")) if echo else None,
        )
    except ExecError as e:
        logger.error(f"Scenario {name} timed out: {e}")
        return ScenarioResult(
            name=name, path=str(path), success=False,
            duration=time.monotonic() - started, error=str(e),
        )

    result = ScenarioResult(
        name=name, path=str(path), success=code == 0, returncode=code,
        duration=time.monotonic() - started, output=output,
    )
    if result.success:
        logger.info(f"Scenario {name} passed in {result.duration:.1f}s")
    else:
        logger.error(f"Scenario {name} failed with exit code {code}")
    return result

async def run_all(paths: Sequence[Path], timeout: Optional[float] = None, echo: bool = True) -> List[ScenarioResult]:
    results = []
    for path in paths:
        results.append(await run_scenario(path, timeout, echo))
    return results

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run CAS browser scenarios")
    p.add_argument("--scenario", action="append", dest="scenarios", metavar="NAME",
                   help="scenario to run (repeatable); defaults to all")
    p.add_argument("--scenarios-dir", default=settings.SCENARIOS_DIR)
    p.add_argument("--timeout", type=float, default=settings.SCENARIO_TIMEOUT,
                   help="seconds without output before a scenario is killed")
    p.add_argument("--wait-for-cas", action="store_true",
                   help="poll the CAS login endpoint before running anything")
    p.add_argument("--json", action="store_true", help="print results as JSON")
    return p.parse_args(argv)

async def amain(args: argparse.Namespace) -> int:
    try:
        paths = discover_scenarios(Path(args.scenarios_dir), args.scenarios)
    except FileNotFoundError as e:
        logger.error(str(e))
        return 2
    if not paths:
        logger.error(f"No scenarios found in {args.scenarios_dir}")
        return 2

    if args.wait_for_cas:
        login = settings.login_url(service="")
        if not await wait_for_cas(login, settings.CAS_WAIT_ATTEMPTS, settings.CAS_WAIT_DELAY):
            logger.error(f"CAS did not become ready at {login}")
            return 2

    results = await run_all(paths, args.timeout, echo=not args.json)

    if args.json:
        print(json.dumps([r.model_dump() for r in results], indent=2))
    else:
        for r in results:
            print(f"{'PASS' if r.success else 'FAIL'} {r.name} ({r.duration:.1f}s)")
        failed = sum(not r.success for r in results)
        print(f"{len(results) - failed} passed, {failed} failed")

    return 0 if all(r.success for r in results) else 1

def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO)
    return asyncio.run(amain(parse_args(argv)))

if __name__ == "__main__":
    sys.exit(main())
