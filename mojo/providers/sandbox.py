"""Isolated Python execution for the code tools."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from mojo.errors import ProviderError, ProviderErrorKind

LOGGER = logging.getLogger(__name__)

_MAX_OUTPUT_CHARS = 20_000
_RESULT_FILE = "__result__.json"

# Runs inside the child interpreter. The value of a trailing expression is
# reported as the result, the way a notebook cell would show it.
_RUNNER = """
import ast, json, sys, traceback
out = {"result": None, "error": None}
try:
    with open(sys.argv[1], encoding="utf-8") as fh:
        tree = ast.parse(fh.read(), "<sandbox>")
    last = None
    if tree.body and isinstance(tree.body[-1], ast.Expr):
        last = ast.Expression(tree.body.pop().value)
    ns = {"__name__": "__main__"}
    exec(compile(tree, "<sandbox>", "exec"), ns)
    if last is not None:
        value = eval(compile(last, "<sandbox>", "eval"), ns)
        if value is not None:
            out["result"] = repr(value)
except BaseException as exc:
    traceback.print_exc()
    out["error"] = f"{type(exc).__name__}: {exc}"
with open(%r, "w", encoding="utf-8") as fh:
    json.dump(out, fh)
""" % _RESULT_FILE


@dataclass(slots=True)
class ExecutionResult:
    stdout: str
    stderr: str
    result: str | None = None
    error: str | None = None

    def to_message(self) -> str:
        parts = [p for p in (self.result, self.stdout.strip(), self.stderr.strip()) if p]
        if self.error:
            parts.append(f"Error: {self.error}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _truncate(text: str) -> str:
    if len(text) <= _MAX_OUTPUT_CHARS:
        return text
    return text[:_MAX_OUTPUT_CHARS] + "\n... (output truncated)"


class SandboxClient:
    """Run untrusted code in a separate interpreter with CPU, memory and time caps.

    The child runs in isolated mode (``-I``) inside a throwaway directory, so it
    sees neither the service's environment variables nor its working tree.
    """

    name = "sandbox"

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        memory_mb: int = 512,
        python_executable: str | None = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._memory_mb = memory_mb
        self._python = python_executable or sys.executable

    @property
    def enabled(self) -> bool:
        return True

    def _limit_resources(self) -> None:
        import resource

        memory = self._memory_mb * 1024 * 1024
        resource.setrlimit(resource.RLIMIT_AS, (memory, memory))
        cpu = int(self._timeout_seconds) + 1
        resource.setrlimit(resource.RLIMIT_CPU, (cpu, cpu))

    async def run_code(self, source: str) -> ExecutionResult:
        with tempfile.TemporaryDirectory(prefix="mojo-sandbox-") as workdir:
            script = Path(workdir) / "main.py"
            script.write_text(source, encoding="utf-8")
            try:
                proc = await asyncio.create_subprocess_exec(
                    self._python,
                    "-I",
                    "-c",
                    _RUNNER,
                    str(script),
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    cwd=workdir,
                    env={"PYTHONIOENCODING": "utf-8", "MPLBACKEND": "Agg"},
                    preexec_fn=self._limit_resources if sys.platform != "win32" else None,
                )
            except OSError as exc:
                raise ProviderError(ProviderErrorKind.UNAVAILABLE, f"cannot start sandbox: {exc}", provider=self.name) from exc

            try:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout_seconds)
            except asyncio.TimeoutError:
                proc.kill()
                await proc.wait()
                LOGGER.warning("Sandbox execution timed out after %.0fs", self._timeout_seconds)
                return ExecutionResult(
                    stdout="", stderr="", error=f"Execution timed out after {self._timeout_seconds:.0f}s"
                )
            except asyncio.CancelledError:
                proc.kill()
                await proc.wait()
                raise

            outcome: dict[str, Any] = {}
            result_path = Path(workdir) / _RESULT_FILE
            if result_path.exists():
                try:
                    outcome = json.loads(result_path.read_text(encoding="utf-8"))
                except json.JSONDecodeError:
                    outcome = {}

        error = outcome.get("error")
        if error is None and proc.returncode != 0:
            error = f"Process exited with code {proc.returncode}"
        return ExecutionResult(
            stdout=_truncate(stdout.decode("utf-8", errors="replace")),
            stderr=_truncate(stderr.decode("utf-8", errors="replace")),
            result=outcome.get("result"),
            error=error,
        )
