"""
Contract deployer: builds the equity token WASM and deploys a fresh instance.

Shells out to cargo and the stellar CLI (external tools; their behaviour is not
owned here). Each deployment creates a new contract instance with its own storage.
Config: STELLARK_CONTRACTS_DIR, STELLAR_DEPLOY_SOURCE, STELLAR_NETWORK.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

from backend_stellark.core.exceptions import DeploymentError, InvalidAddress
from backend_stellark.ledger.scval_codec import validate_contract_id
from backend_stellark.stellark_logging import bind_contract, get_logger

logger = get_logger(__name__)

WASM_TARGET = "wasm32v1-none"
WASM_RELATIVE_PATH = Path("target") / WASM_TARGET / "release" / "equity_token.wasm"
EQUITY_TOKEN_CRATE = Path("contracts") / "equity-token"


@dataclass
class DeploymentResult:
    contract_id: str
    explorer_url: str


@dataclass
class CommandOutput:
    returncode: int
    stdout: str
    stderr: str


async def run_command(args: list[str], cwd: Path) -> CommandOutput:
    """Run a command without a shell; capture decoded stdout/stderr."""
    proc = await asyncio.create_subprocess_exec(
        *args,
        cwd=str(cwd),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    out, err = await proc.communicate()
    return CommandOutput(
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=out.decode("utf-8", errors="replace"),
        stderr=err.decode("utf-8", errors="replace"),
    )


def extract_contract_id(stdout: str) -> str | None:
    """The CLI prints the contract id as its last output line."""
    lines = [line.strip() for line in stdout.strip().splitlines() if line.strip()]
    if not lines:
        return None
    try:
        return validate_contract_id(lines[-1])
    except InvalidAddress:
        return None


class ContractDeployer:
    def __init__(self, contracts_dir: Path, *, source: str = "alice", network: str = "testnet", explorer_url: str = "") -> None:
        self._contracts_dir = Path(contracts_dir)
        self._source = source
        self._network = network
        self._explorer_url = explorer_url.rstrip("/")

    def build_command(self) -> list[str]:
        return ["cargo", "build", "--target", WASM_TARGET, "--release"]

    def deploy_command(self) -> list[str]:
        return [
            "stellar", "contract", "deploy",
            "--wasm", str(WASM_RELATIVE_PATH),
            "--source", self._source,
            "--network", self._network,
        ]

    async def _run(self, args: list[str], cwd: Path, failure: str) -> CommandOutput:
        try:
            result = await run_command(args, cwd)
        except OSError as e:
            logger.error("deploy_command_unavailable", command=args[0], error=str(e))
            raise DeploymentError(failure, str(e)) from e
        if result.returncode != 0:
            logger.error("deploy_command_failed", command=" ".join(args), returncode=result.returncode, stderr=result.stderr[-2000:])
            raise DeploymentError(failure, result.stderr.strip() or result.stdout.strip())
        return result

    async def deploy(self) -> DeploymentResult:
        """Build then deploy. Raises DeploymentError with error/details for the API body."""
        logger.info("contract_deploy_started", contracts_dir=str(self._contracts_dir), network=self._network)

        await self._run(self.build_command(), self._contracts_dir / EQUITY_TOKEN_CRATE, "Contract build failed")
        logger.info("contract_build_done")

        result = await self._run(self.deploy_command(), self._contracts_dir, "Contract deployment failed")
        contract_id = extract_contract_id(result.stdout)
        if contract_id is None:
            logger.error("contract_id_invalid", stdout=result.stdout[-500:], stderr=result.stderr[-500:])
            raise DeploymentError(
                "Failed to extract valid contract ID",
                {"stdout": result.stdout, "stderr": result.stderr},
            )

        bind_contract(contract_id).info("contract_deployed", network=self._network)
        return DeploymentResult(
            contract_id=contract_id,
            explorer_url=f"{self._explorer_url}/contract/{contract_id}",
        )
