"""
Command-line driver for the sandbox.

Usage:
    evosandbox optimize --fitness preset3 --generations 200
    evosandbox optimize --config run.yaml --preset explore --snapshot run.json
    evosandbox optimize --fitness custom --expression "-(x - 1)**2 - y**2"
    evosandbox platformer --preset fast --generations 40
    evosandbox restore run.json
    evosandbox presets
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
import sys
from typing import Any

import click
from dotenv import load_dotenv
from loguru import logger
import yaml

from evosandbox.config.presets import (
    CONFIG_PRESETS,
    apply_config_preset,
    apply_fitness_preset,
    create_default_config,
    random_seed,
    with_custom_fitness,
)
from evosandbox.evolution.engine import EvolutionEngine, GAConfig, normalize_config
from evosandbox.evolution.models import EngineState
from evosandbox.exceptions import SandboxError
from evosandbox.fitness.presets import FITNESS_PRESETS, FitnessPresetId
from evosandbox.platformer.models import (
    PLATFORMER_PRESETS,
    TrainerState,
    platformer_preset,
)
from evosandbox.platformer.trainer import PlatformerTrainer
from evosandbox.runner.run_loop import RunLoop
from evosandbox.snapshot import build_snapshot, dump_snapshot, parse_snapshot, restore_snapshot
from evosandbox.utils.logger_setup import setup_logger

FITNESS_CHOICES = [preset.value for preset in FitnessPresetId] + ["custom"]


def _fail(message: str, detail: Any = None) -> None:
    click.echo(click.style(f"❌ {message}", fg="red"), err=True)
    if detail is not None:
        click.echo(f"   {detail}", err=True)
    sys.exit(1)


def _load_yaml(path: Path | None) -> dict[str, Any]:
    if path is None:
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        _fail(f"Failed to load config: {e}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        _fail("Invalid config:", f"top level of {path} must be a mapping")
    return data


def _describe_engine(state: EngineState) -> None:
    best = state.best_so_far
    click.echo(f"   Generation: {state.generation}")
    if best is not None:
        genes = ", ".join(f"{g:.4f}" for g in best.genes)
        click.echo(f"   Best fitness: {best.fitness:.6f} ({best.id})")
        click.echo(f"   Best genes: [{genes}]")
    latest = state.history[-1]
    click.echo(f"   Average: {latest.average_fitness:.6f}  Diversity: {latest.diversity:.6f}")


def _describe_trainer(state: TrainerState) -> None:
    latest = state.history[-1]
    click.echo(f"   Generation: {state.generation}")
    click.echo(
        f"   Best: {latest.best_fitness:.2f}  Average: {latest.average_fitness:.2f}  "
        f"Reached goal: {latest.reached}/{len(state.evaluated)}"
    )
    if state.best_ever is not None:
        best = state.best_ever
        status = "goal" if best.reached_goal else "fell" if best.fell else "timeout"
        click.echo(
            f"   Best ever: {best.fitness:.2f} ({best.id}, {status} after {best.steps_taken} steps)"
        )


def _progress(every: int):
    def on_step(state) -> None:
        if every > 0 and state.generation % every == 0:
            latest = state.history[-1]
            logger.info(
                "[CLI] Generation {} | best={:.4f}, avg={:.4f}",
                state.generation,
                latest.best_fitness,
                latest.average_fitness,
            )

    return on_step


@click.group()
@click.option(
    "--log-level",
    default="INFO",
    envvar="EVOSANDBOX_LOG_LEVEL",
    type=click.Choice(["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Console log level (env: EVOSANDBOX_LOG_LEVEL).",
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    envvar="EVOSANDBOX_LOG_DIR",
    help="Also write a rotating log file into this directory.",
)
def main(log_level: str, log_dir: Path | None) -> None:
    """Evolutionary computation sandbox: analytic optimization and a platformer trainer."""
    setup_logger(level=log_level.upper(), log_dir=str(log_dir) if log_dir else None)


@main.command()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help="YAML file with GA settings (snake_case or camelCase keys).")
@click.option("--preset", type=click.Choice(sorted(CONFIG_PRESETS)), default=None,
              help="Apply a named run preset on top of the config.")
@click.option("--fitness", type=click.Choice(FITNESS_CHOICES), default=None,
              help="Fitness preset id, or 'custom' with --expression.")
@click.option("--expression", type=str, default=None, help="Custom fitness expression.")
@click.option("--seed", type=int, default=None, help="PRNG seed (32-bit).")
@click.option("--random-seed", "use_random_seed", is_flag=True, help="Draw a fresh seed from the OS.")
@click.option("--generations", type=int, default=None, help="Override max_generations.")
@click.option("--population", type=int, default=None, help="Override population_size.")
@click.option("--report-every", type=int, default=25, show_default=True,
              help="Log progress every N generations (0 disables).")
@click.option("--snapshot", "snapshot_path", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Write a JSON run snapshot here when done.")
def optimize(
    config_path: Path | None,
    preset: str | None,
    fitness: str | None,
    expression: str | None,
    seed: int | None,
    use_random_seed: bool,
    generations: int | None,
    population: int | None,
    report_every: int,
    snapshot_path: Path | None,
) -> None:
    """Optimize an analytic fitness surface until max_generations."""
    try:
        config = _build_ga_config(
            config_path, preset, fitness, expression, seed, use_random_seed, generations, population
        )
    except SandboxError as e:
        _fail("Invalid config:", e)

    engine = EvolutionEngine(config)
    if engine.fitness_error:
        click.echo(
            click.style(f"⚠️  Custom fitness rejected, using preset1: {engine.fitness_error}", fg="yellow"),
            err=True,
        )

    cfg = engine.get_config()
    click.echo(click.style("🔧 Running optimization", fg="cyan", bold=True))
    click.echo(f"   Fitness: {cfg.fitness_fn_name}  Seed: {cfg.seed}")
    click.echo(f"   Population: {cfg.population_size}  Generations: {cfg.max_generations}")
    click.echo()

    engine.set_running(True)
    loop = RunLoop(engine, on_step=_progress(report_every))
    try:
        state = asyncio.run(loop.run())
    except SandboxError as e:
        _fail(f"Error: {e}")

    click.echo(click.style("✅ Optimization finished", fg="green", bold=True))
    _describe_engine(state)

    if snapshot_path is not None:
        snapshot_path.write_text(dump_snapshot(build_snapshot(engine)))
        click.echo(f"   📁 Snapshot written to {snapshot_path}")


def _build_ga_config(
    config_path: Path | None,
    preset: str | None,
    fitness: str | None,
    expression: str | None,
    seed: int | None,
    use_random_seed: bool,
    generations: int | None,
    population: int | None,
) -> GAConfig:
    raw = _load_yaml(config_path)
    config = normalize_config(raw) if raw else create_default_config()
    if fitness is not None and fitness != "custom":
        config = apply_fitness_preset(config, fitness)
    if expression is not None or fitness == "custom":
        config = with_custom_fitness(config, expression if expression is not None else config.custom_fitness_code)
    if preset is not None:
        config = apply_config_preset(config, preset)

    overrides: dict[str, Any] = {}
    if use_random_seed:
        overrides["seed"] = random_seed()
    elif seed is not None:
        overrides["seed"] = seed
    if generations is not None:
        overrides["max_generations"] = generations
    if population is not None:
        overrides["population_size"] = population
    return config.with_updates(**overrides) if overrides else config


@main.command()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help="YAML file with platformer settings.")
@click.option("--preset", type=click.Choice(sorted(PLATFORMER_PRESETS)), default="default",
              show_default=True, help="Named platformer preset.")
@click.option("--generations", type=int, default=50, show_default=True,
              help="Generations to train.")
@click.option("--seed", type=int, default=None, help="PRNG seed (32-bit).")
@click.option("--report-every", type=int, default=10, show_default=True,
              help="Log progress every N generations (0 disables).")
@click.option("--trajectory", "trajectory_path", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Write the best-ever trajectory as JSON here.")
def platformer(
    config_path: Path | None,
    preset: str,
    generations: int,
    seed: int | None,
    report_every: int,
    trajectory_path: Path | None,
) -> None:
    """Evolve a control policy for the platformer agent on the default level."""
    overrides = _load_yaml(config_path)
    overrides["max_generations"] = generations
    if seed is not None:
        overrides["seed"] = seed
    try:
        config = platformer_preset(preset, **overrides)
    except SandboxError as e:
        _fail("Invalid config:", e)

    trainer = PlatformerTrainer(config)
    click.echo(click.style("🔧 Training platformer agent", fg="cyan", bold=True))
    click.echo(f"   Preset: {preset}  Seed: {config.seed}")
    click.echo(f"   Population: {config.population_size}  Steps: {config.steps}  Generations: {generations}")
    click.echo()

    trainer.run()
    loop = RunLoop(trainer, on_step=_progress(report_every))
    try:
        state = asyncio.run(loop.run())
    except SandboxError as e:
        _fail(f"Error: {e}")

    click.echo(click.style("✅ Training finished", fg="green", bold=True))
    _describe_trainer(state)

    if trajectory_path is not None and state.best_ever is not None:
        frames = [
            {"x": f.x, "y": f.y, "vx": f.vx, "vy": f.vy, "grounded": f.grounded, "step": f.step_index}
            for f in state.best_ever.trajectory
        ]
        trajectory_path.write_text(json.dumps({"id": state.best_ever.id, "frames": frames}, indent=2))
        click.echo(f"   📁 Trajectory written to {trajectory_path}")


@main.command()
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def restore(snapshot: Path) -> None:
    """Rebuild a run from a SNAPSHOT file and report where it stands."""
    try:
        parsed = parse_snapshot(snapshot.read_bytes())
    except SandboxError as e:
        _fail("Invalid snapshot:", e)

    engine = EvolutionEngine(parsed.config)
    state, error = restore_snapshot(engine, parsed)
    if error:
        click.echo(click.style(f"⚠️  Custom fitness rejected, using preset1: {error}", fg="yellow"), err=True)
    click.echo(click.style("✅ Run restored", fg="green", bold=True))
    _describe_engine(state)
    if parsed.best_individual is not None and state.best_so_far is not None:
        same = parsed.best_individual.genes == state.best_so_far.genes
        click.echo(f"   Matches recorded best: {'yes' if same else 'no'}")


@main.command()
def presets() -> None:
    """List fitness, run and platformer presets."""
    click.echo(click.style("Fitness presets", bold=True))
    for preset in FITNESS_PRESETS.values():
        click.echo(f"   {preset.id.value:<9} {preset.name} ({preset.suggested_length} genes)")
    click.echo(click.style("Run presets", bold=True))
    for name, (description, _) in CONFIG_PRESETS.items():
        click.echo(f"   {name:<9} {description}")
    click.echo(click.style("Platformer presets", bold=True))
    for name in PLATFORMER_PRESETS:
        cfg = platformer_preset(name)
        click.echo(f"   {name:<9} population={cfg.population_size} steps={cfg.steps}")


def run() -> None:
    load_dotenv()
    main()


if __name__ == "__main__":
    run()
