# cas_e2e/executor.py
import asyncio, logging
from typing import AsyncIterator, Callable, Mapping, Sequence

logger = logging.getLogger(__name__)

class ExecError(Exception): ...

async def spawn(cmd: Sequence[str], env: Mapping[str, str] | None = None) -> asyncio.subprocess.Process:
    logger.info(f"Spawning: {' '.join(cmd)}")
    return await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
        env=dict(env) if env is not None else None,
    )

async def stream_process(proc: asyncio.subprocess.Process, timeout: float | None = None) -> AsyncIterator[str]:
    """Yield combined stdout/stderr lines; ``timeout`` bounds the silence between lines."""
    try:
        while True:
            try:
                line = await asyncio.wait_for(proc.stdout.readline(), timeout=timeout)
            except asyncio.TimeoutError:
                if proc.returncode is None:
                    proc.kill()
                raise ExecError(f"no output for {timeout}s, killed pid {proc.pid}")
            if not line:
                break
            yield line.decode(errors="replace").rstrip("\n")
    finally:
        try:
            await asyncio.wait_for(proc.wait(), timeout=3)
        except asyncio.TimeoutError:
            if proc.returncode is None:
                proc.kill()
            await proc.wait()

async def run_capture(
    cmd: Sequence[str],
    timeout: float | None = None,
    env: Mapping[str, str] | None = None,
    on_line: Callable[[str], None] | None = None,
) -> tuple[int, str]:
    proc = await spawn(cmd, env)
    buf = []
    async for line in stream_process(proc, timeout):
        buf.append(line)
        if on_line:
            on_line(line)
    return proc.returncode, "\n".join(buf)
