#!/usr/bin/env python3
"""
Demo script to validate FlagPilot feature resolution.
Walks through runtime toggles in a debug build, then shows how release builds
switch compile-time gated features over to build-time defines.
"""
import asyncio

from flagpilot.features import (
    DEFAULT_REGISTRY,
    BuildConfig,
    BuildMode,
    FeatureFlagService,
    ProjectCategory,
    can_toggle,
)
from flagpilot.features.registry import DARK_MODE, DOCTOR_AI_AVATAR
from flagpilot.store import InMemoryPreferenceStore


def print_section(title: str):
    """Print a formatted section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70 + "\n")


async def print_features(service: FeatureFlagService, build: BuildConfig):
    """Print every feature with its resolved state, grouped by category."""
    states = await DEFAULT_REGISTRY.resolve_all(service, build)
    print(f"Build mode: {build.mode.display_name}")

    for category in ProjectCategory:
        features = DEFAULT_REGISTRY.get_features_by_category(category)
        if not features:
            continue

        print(f"\n{category.emoji} {category.display_name}:")
        for feature in features:
            status_icon = "✓" if states[feature.id] else "○"
            lock = "" if can_toggle(feature, build) else " (locked)"
            print(f"  {status_icon} {feature.name:20}{lock}")


async def run():
    """Run feature flag demonstration."""
    print_section("FlagPilot Feature Flag Demo")

    service = FeatureFlagService(InMemoryPreferenceStore(), registry=DEFAULT_REGISTRY)
    await service.init()
    debug = BuildConfig(mode=BuildMode.DEBUG)

    # STEP 1: Fresh store, defaults only
    print_section("STEP 1: Defaults in a Debug Build")
    await print_features(service, debug)

    # STEP 2: Runtime toggle
    print_section("STEP 2: Toggle Dark Mode at Runtime")
    new_state = await service.toggle_feature(DARK_MODE.id)
    print(f"toggle_feature('{DARK_MODE.id}') -> {new_state}")
    print(f"Dark mode enabled: {await DARK_MODE.is_enabled(service, debug)}")
    print(f"Persisted flags: {await service.export_flags()}")

    # STEP 3: Release builds ignore runtime toggles of gated features
    print_section("STEP 3: Release Build")
    release = BuildConfig(mode=BuildMode.RELEASE)
    await print_features(service, release)
    print(f"\nDark mode enabled in release: {await DARK_MODE.is_enabled(service, release)}")

    with_define = BuildConfig(
        mode=BuildMode.RELEASE,
        defines={DOCTOR_AI_AVATAR.compile_time_flag: True},
    )
    print(f"Doctor AI with {DOCTOR_AI_AVATAR.compile_time_flag}=true: "
          f"{await DOCTOR_AI_AVATAR.is_enabled(service, with_define)}")

    kill_switch = with_define.model_copy(update={"force_disable_all_experimental": True})
    print(f"Same build with FORCE_DISABLE_ALL_EXPERIMENTAL=true: "
          f"{await DOCTOR_AI_AVATAR.is_enabled(service, kill_switch)}")

    # STEP 4: Reset
    print_section("STEP 4: Reset All Flags")
    removed = await service.reset_all()
    print(f"Removed {removed} persisted flag(s)")
    print(f"Dark mode enabled: {await DARK_MODE.is_enabled(service, debug)}")

    await service.close()
    print_section("Demo Complete")


def main():
    asyncio.run(run())


if __name__ == "__main__":
    main()
