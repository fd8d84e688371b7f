import asyncio
import json
import click
from pathlib import Path
from typing import Optional

from .config import Config
from .export import ScriptExporter, EXPORT_FORMATS
from .models.script import AudienceMode, ProjectOutline, ScriptStyle, StyleParameters
from .models.session import SessionStatus
from .pipeline import Pipeline
from .store import create_store
from .utils.logger import setup_logger
from .utils.progress import render_events

@click.group()
@click.option('--config', '-c', type=click.Path(dir_okay=False), default='config.yaml',
              help='Path to configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--log-file', type=click.Path(dir_okay=False), help='Also write a debug log here')
@click.pass_context
def cli(ctx: click.Context, config: str, verbose: bool, log_file: Optional[str]):
    """Script Writer - turn a novel into a phased episodic script."""
    ctx.ensure_object(dict)

    config_path = Path(config)
    if config_path.exists():
        ctx.obj['config'] = Config.from_yaml(config_path)
    else:
        ctx.obj['config'] = Config()

    log_level = "DEBUG" if verbose else ctx.obj['config'].log_level
    logger = setup_logger(log_level, Path(log_file) if log_file else None)
    ctx.obj['logger'] = logger

    logger.info(f"Script Writer v0.1.0")
    if config_path.exists():
        logger.info(f"Config loaded from: {config_path}")

def _read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")

def _load_outline(path: str) -> ProjectOutline:
    with open(path, "r", encoding="utf-8") as f:
        return ProjectOutline.model_validate(json.load(f))

def _build_style(config: Config, mode: Optional[str], style: Optional[str],
                 layout: Optional[str], language: Optional[str]) -> StyleParameters:
    updates = {}
    if mode:
        updates["mode"] = AudienceMode(mode)
    if style:
        updates["script_style"] = ScriptStyle(style)
    if layout:
        updates["layout_reference"] = _read_text(layout)
    if language:
        updates["language"] = language
    return config.style.model_copy(update=updates)

def _style_options(func):
    func = click.option('--language', type=click.Choice(["auto", "zh", "en"]), help='Prompt language')(func)
    func = click.option('--layout', type=click.Path(exists=True, dir_okay=False),
                        help='Layout reference file')(func)
    func = click.option('--style', 'script_style', type=click.Choice([s.value for s in ScriptStyle]),
                        help='Script style')(func)
    func = click.option('--mode', type=click.Choice([m.value for m in AudienceMode]),
                        help='Target audience')(func)
    return func

@cli.command()
@click.option('--source', '-s', required=True, type=click.Path(exists=True, dir_okay=False),
              help='Source novel text file')
@click.option('--output', '-o', required=True, type=click.Path(dir_okay=False), help='Outline JSON file')
@_style_options
@click.pass_context
def outline(ctx: click.Context, source: str, output: str, mode: Optional[str],
            script_style: Optional[str], layout: Optional[str], language: Optional[str]):
    """Generate the outline, characters and phase plan."""
    config = ctx.obj['config']
    logger = ctx.obj['logger']
    style = _build_style(config, mode, script_style, layout, language)

    logger.info(f"Generating outline from {source}...")
    try:
        pipeline = Pipeline(config)
        result = asyncio.run(_closing(pipeline, pipeline.generate_outline(_read_text(source), style)))
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps(result.model_dump(by_alias=True), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        logger.success(
            f"Outline saved to {output_path}: {len(result.phase_plans)} phases, "
            f"{result.total_episodes} episodes"
        )
    except Exception as e:
        logger.error(f"Outline generation failed: {e}")
        raise click.ClickException(str(e))

async def _closing(pipeline: Pipeline, coro):
    try:
        return await coro
    finally:
        await pipeline.aclose()

async def _load_session(config: Config, project: str):
    async with create_store(config.store) as store:
        return await store.load(project)

def _run_to_end(pipeline: Pipeline, run, total: int):
    async def _consume():
        await render_events(run, total)
        return run.session
    return asyncio.run(_closing(pipeline, _consume()))

def _report(ctx: click.Context, session) -> None:
    logger = ctx.obj['logger']
    click.echo(session.summary_line())
    if session.status == SessionStatus.COMPLETE:
        logger.success(f"All {len(session.produced_units)} episodes generated")
        return
    logger.warning(f"Generation stopped early; {len(session.produced_units)} episodes kept")
    raise click.ClickException(session.error or f"Session ended {session.status.value}")

@cli.command()
@click.option('--source', '-s', required=True, type=click.Path(exists=True, dir_okay=False),
              help='Source novel text file')
@click.option('--outline', '-l', 'outline_file', required=True,
              type=click.Path(exists=True, dir_okay=False), help='Outline JSON file')
@click.option('--project', '-p', required=True, help='Project id used as the store key')
@_style_options
@click.pass_context
def generate(ctx: click.Context, source: str, outline_file: str, project: str, mode: Optional[str],
             script_style: Optional[str], layout: Optional[str], language: Optional[str]):
    """Generate every episode phase by phase."""
    config = ctx.obj['config']
    logger = ctx.obj['logger']

    try:
        plan = _load_outline(outline_file)
        style = _build_style(config, mode, script_style, layout, language)
        pipeline = Pipeline(config)
        run = pipeline.start(
            plan.phase_plans, _read_text(source), plan.content, style, project_id=project
        )
        session = _run_to_end(pipeline, run, plan.total_episodes)
    except Exception as e:
        logger.error(f"Generation failed: {e}")
        raise click.ClickException(str(e))

    _report(ctx, session)

@cli.command()
@click.option('--source', '-s', required=True, type=click.Path(exists=True, dir_okay=False),
              help='Source novel text file')
@click.option('--outline', '-l', 'outline_file', required=True,
              type=click.Path(exists=True, dir_okay=False), help='Outline JSON file')
@click.option('--project', '-p', required=True, help='Project id used as the store key')
@click.pass_context
def resume(ctx: click.Context, source: str, outline_file: str, project: str):
    """Continue a partial or cancelled project from its last committed phase."""
    config = ctx.obj['config']
    logger = ctx.obj['logger']

    try:
        plan = _load_outline(outline_file)
        pipeline = Pipeline(config)

        async def _resume():
            run = await pipeline.resume(project, _read_text(source), plan.content)
            await render_events(run, run.session.total_episodes)
            return run.session

        session = asyncio.run(_closing(pipeline, _resume()))
    except Exception as e:
        logger.error(f"Resume failed: {e}")
        raise click.ClickException(str(e))

    _report(ctx, session)

@cli.command()
@click.option('--project', '-p', required=True, help='Project id')
@click.pass_context
def status(ctx: click.Context, project: str):
    """Show the stored state of a project."""
    config = ctx.obj['config']
    logger = ctx.obj['logger']

    try:
        session = asyncio.run(_load_session(config, project))
    except Exception as e:
        logger.error(f"Could not load {project}: {e}")
        raise click.ClickException(str(e))
    if session is None:
        raise click.ClickException(f"No stored session for project {project}")

    click.echo(session.summary_line())
    for i, phase in enumerate(session.phases):
        mark = "x" if i < session.completed_phases else " "
        click.echo(f"  [{mark}] phase {phase.phase_index}: {phase.episode_count} episodes - {phase.description}")
    if session.error:
        click.echo(f"Last error: {session.error}")

@cli.command()
@click.option('--project', '-p', required=True, help='Project id')
@click.option('--output', '-o', required=True, type=click.Path(dir_okay=False), help='Output file')
@click.option('--format', 'fmt', type=click.Choice(EXPORT_FORMATS), default='md', help='Export format')
@click.option('--title', help='Document title')
@click.pass_context
def export(ctx: click.Context, project: str, output: str, fmt: str, title: Optional[str]):
    """Export generated episodes to a document."""
    config = ctx.obj['config']
    logger = ctx.obj['logger']

    try:
        session = asyncio.run(_load_session(config, project))
        if session is None:
            raise ValueError(f"No stored session for project {project}")
        ScriptExporter(session, title=title).export(Path(output), fmt)
    except Exception as e:
        logger.error(f"Export failed: {e}")
        raise click.ClickException(str(e))

def main():
    cli()

if __name__ == '__main__':
    main()
