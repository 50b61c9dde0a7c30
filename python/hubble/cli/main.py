"""CLI entry point for HUBBLE."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import structlog
import typer

from hubble.core.config import HubbleConfig

app = typer.Typer(
    name="hubble",
    help="Off-chain replica of the Hubble optimistic rollup state transitions",
)

logger = structlog.get_logger()


def _load_config(config_path: Optional[Path]) -> HubbleConfig:
    config = (
        HubbleConfig.from_yaml(config_path)
        if config_path is not None and config_path.exists()
        else HubbleConfig()
    )
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, config.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )
    return config


def _read_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        typer.echo(f"{path} not found", err=True)
        raise typer.Exit(1)
    with open(path) as f:
        return json.load(f)


def _amount(value: int | str, codec) -> int:
    """Integers are base units; strings are human amounts such as ``"39.99"``."""
    return codec.cast_int(value) if isinstance(value, str) else int(value)


def _states(entries: list[dict[str, Any]], codec):
    from hubble.core.types import State

    return [
        State(
            pubkey_index=entry["pubkey_index"],
            token_type=entry["token_type"],
            balance=_amount(entry["balance"], codec),
            nonce=entry.get("nonce", 0),
        )
        for entry in entries
    ]


ConfigOption = typer.Option(
    None,
    "--config", "-c",
    help="Path to configuration file",
)


@app.command()
def zeros(
    depth: int = typer.Argument(..., help="Tree depth"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Print the zero hash of every level up to DEPTH."""
    from hubble.tree.merkle import zero_hashes

    _load_config(config_path)
    for level, node in enumerate(zero_hashes(depth)):
        typer.echo(f"{level}: 0x{node.hex()}")


@app.command()
def root(
    state_file: Path = typer.Argument(..., help="JSON file with a list of states"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Print the state root of the states listed in STATE_FILE."""
    from hubble.encoding.codec import DecimalCodec
    from hubble.tree.state import StateTree

    config = _load_config(config_path)
    codec = DecimalCodec(**config.codec.model_dump())
    data = _read_json(state_file)
    tree = StateTree.new(data.get("depth", config.tree.state_depth))
    tree.create_state_bulk(_states(data["states"], codec))
    typer.echo(f"0x{tree.root.hex()}")


@app.command()
def deposit(
    deposit_file: Path = typer.Argument(..., help="JSON file with states and a deposit subtree"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Merge the deposits in DEPOSIT_FILE into the first empty subtree."""
    from hubble.encoding.codec import DecimalCodec
    from hubble.tree.state import StateTree

    config = _load_config(config_path)
    codec = DecimalCodec(**config.codec.model_dump())
    data = _read_json(deposit_file)
    tree = StateTree.new(
        data.get("depth", config.tree.state_depth),
        config.tree.max_deposit_subtree_depth,
    )
    tree.create_state_bulk(_states(data.get("states", []), codec))
    try:
        merge = tree.merge_deposit_subtree(
            _states(data["deposits"], codec), data["subtree_depth"]
        )
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1)
    typer.echo(f"position: {merge.position}")
    typer.echo(f"subtree root: 0x{merge.subtree_root.hex()}")
    typer.echo(f"state root: 0x{tree.root.hex()}")


@app.command()
def replay(
    scenario_file: Path = typer.Argument(..., help="JSON scenario with states and transfers"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Apply a transfer commitment, then replay it as a dispute would."""
    from hubble.commitment.commitments import TransferCommitment
    from hubble.encoding.codec import DecimalCodec
    from hubble.encoding.tx import Transfer, serialize_transfers
    from hubble.engine.processor import TransactionEngine
    from hubble.tree.state import StateTree
    from hubble.verification.dispute import DisputeReplayer

    config = _load_config(config_path)
    codec = DecimalCodec(**config.codec.model_dump())
    data = _read_json(scenario_file)

    tree = StateTree.new(data.get("depth", config.tree.state_depth))
    tree.create_state_bulk(_states(data["states"], codec))
    txs = [
        Transfer(
            from_index=entry["from"],
            to_index=entry["to"],
            token_type=entry["token_type"],
            amount=_amount(entry["amount"], codec),
            fee=_amount(entry["fee"], codec),
            nonce=entry["nonce"],
        )
        for entry in data["transfers"]
    ]
    fee_receiver = data["fee_receiver"]

    pre_root = tree.root
    engine = TransactionEngine(
        tree, codec=codec, max_txs_per_commit=config.batch.max_txs_per_commit
    )
    commit = engine.process_transfer_commit(txs, fee_receiver)
    typer.echo(f"applied: {commit.result.name} safe={commit.safe}")
    if not commit.safe:
        typer.echo(f"rejected transaction #{commit.failed_index}", err=True)
        raise typer.Exit(1)

    previous = TransferCommitment(state_root=pre_root).to_batch()
    target = TransferCommitment(
        state_root=tree.root,
        fee_receiver=fee_receiver,
        txs=serialize_transfers(txs, codec),
    ).to_batch()
    verdict = DisputeReplayer(codec, config.batch.max_txs_per_commit).replay_transfer(
        previous.proof_compressed(0),
        target.proof(0),
        txs,
        commit.proofs,
        previous_batch_root=previous.commitment_root,
        target_batch_root=target.commitment_root,
    )
    typer.echo(f"post state root: 0x{verdict.post_root.hex()}")
    typer.echo(f"replayed: {verdict.result.name} fraudulent={verdict.fraudulent}")
    if verdict.fraudulent:
        raise typer.Exit(2)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
