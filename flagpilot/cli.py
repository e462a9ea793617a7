"""
CLI interface for inspecting and toggling FlagPilot feature flags.
"""
import asyncio
import json
from typing import Optional

import click

from flagpilot.config import settings
from flagpilot.db.database import is_memory_url
from flagpilot.errors import FeatureToggleLockedError, FlagPilotError, ResetNotAllowedError
from flagpilot.features import (
    DEFAULT_REGISTRY,
    BuildConfig,
    Feature,
    FeatureFlagService,
    FeatureRegistry,
    ProjectCategory,
    can_toggle,
)
from flagpilot.store import SqlPreferenceStore


class FlagPilotCLI:
    """CLI application state: the service, build configuration and registry."""

    def __init__(
        self,
        service: FeatureFlagService,
        build: BuildConfig,
        registry: FeatureRegistry = DEFAULT_REGISTRY,
    ):
        self.service = service
        self.build = build
        self.registry = registry

    @classmethod
    def from_settings(cls, database_url: str) -> "FlagPilotCLI":
        registry = DEFAULT_REGISTRY
        service = FeatureFlagService(
            SqlPreferenceStore(database_url, echo=settings.database_echo),
            key_prefix=settings.flag_key_prefix,
            registry=registry,
            strict=settings.strict_feature_ids,
        )
        build = BuildConfig.from_environ(registry.compile_time_flag_names())
        return cls(service, build, registry)

    def run(self, coro):
        """Run a coroutine against the service, closing the store afterwards."""
        async def runner():
            try:
                return await coro
            finally:
                await self.service.close()

        try:
            return asyncio.run(runner())
        except FlagPilotError as e:
            raise click.ClickException(e.message)

    def toggleable(self, feature_id: str) -> Feature:
        """Look up a feature and make sure it can be toggled in this build."""
        try:
            feature = self.registry.require(feature_id)
            if not can_toggle(feature, self.build):
                raise FeatureToggleLockedError(
                    feature.id, self.build.mode.value, feature.compile_time_flag
                )
        except FlagPilotError as e:
            raise click.ClickException(e.message)
        return feature


@click.group()
@click.option(
    '--database-url',
    default=None,
    help='SQLAlchemy URL of the preference store (defaults to DATABASE_URL).',
)
@click.pass_context
def cli(ctx, database_url: Optional[str]):
    """FlagPilot - feature flags with build-time and runtime toggles"""
    if ctx.obj is None:
        database_url = database_url or settings.database_url
        if is_memory_url(database_url):
            # Each command opens and closes the store, so nothing would persist
            raise click.UsageError(
                f"In-memory database '{database_url}' cannot persist toggles between "
                "commands. Use a file or server database URL."
            )
        ctx.obj = FlagPilotCLI.from_settings(database_url)


@cli.command('list')
@click.pass_obj
def list_features(app: FlagPilotCLI):
    """Show every feature grouped by category."""
    states = app.run(app.registry.resolve_all(app.service, app.build))

    mode = app.build.mode.display_name
    click.echo(f"Build mode: {mode}")
    if app.build.is_restricted:
        click.echo("Experimental features are disabled in release builds. Use compile-time flags to enable.")
    else:
        click.echo(f"You can toggle experimental features at runtime in {mode} mode.")

    for category in ProjectCategory:
        features = app.registry.get_features_by_category(category)
        if not features:
            continue

        click.echo(f"\n{category.emoji} {category.display_name}")
        for feature in features:
            marker = "x" if states[feature.id] else " "
            line = f"  [{marker}] {feature.id:20} {feature.name}"
            if feature.compile_time_flag:
                line += f"  (flag: {feature.compile_time_flag})"
            if not can_toggle(feature, app.build):
                line += "  [locked]"
            click.echo(line)


@cli.command()
@click.argument('feature_id')
@click.pass_obj
def toggle(app: FlagPilotCLI, feature_id: str):
    """Flip the runtime toggle of a feature."""
    feature = app.toggleable(feature_id)
    new_state = app.run(app.service.toggle_feature(feature.id))
    click.echo(f"{feature.name} {'enabled' if new_state else 'disabled'}")


@cli.command('set')
@click.argument('feature_id')
@click.argument('state', type=click.Choice(['on', 'off']))
@click.pass_obj
def set_feature(app: FlagPilotCLI, feature_id: str, state: str):
    """Explicitly enable or disable the runtime toggle of a feature."""
    feature = app.toggleable(feature_id)
    enabled = state == 'on'
    app.run(app.service.set_feature_enabled(feature.id, enabled))
    click.echo(f"{feature.name} {'enabled' if enabled else 'disabled'}")


@cli.command()
@click.option('--yes', is_flag=True, help='Do not ask for confirmation.')
@click.pass_obj
def reset(app: FlagPilotCLI, yes: bool):
    """Reset all runtime toggles to their defaults."""
    if app.build.is_restricted:
        raise click.ClickException(ResetNotAllowedError(app.build.mode.value).message)

    if not yes:
        click.confirm('This will reset all feature flags to their defaults. Continue?', abort=True)

    removed = app.run(app.service.reset_all())
    click.echo(f"All flags reset to defaults ({removed} removed)")


@cli.command()
@click.pass_obj
def export(app: FlagPilotCLI):
    """Print persisted runtime toggles as JSON."""
    flags = app.run(app.service.export_flags())
    click.echo(json.dumps(flags, indent=2, sort_keys=True))


if __name__ == '__main__':
    cli()
