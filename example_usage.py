#!/usr/bin/env python3
"""
🔥🔋🐧 Power Warnings - Usage Example
===================================
Copyright (c) 2025 PNGN-Tec LLC

Runs the warning engine against the device for a few minutes and prints
every poll: skin temperature, battery bucket, and both warning states.
"""

import asyncio
import logging

from warning_engine import create_warning_engine

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(name)s %(levelname)s %(message)s')


def print_poll(state, thermal, battery):
    threshold = f"{thermal.threshold.value:.1f}°C" if thermal.threshold else "disabled"
    battery_icon = "🔋" if state.battery_warning.is_shown else "✅"
    thermal_icon = "🔥" if state.thermal_warning.is_shown else "✅"

    print(f"   {thermal_icon} Thermal: {state.thermal_warning.name} (threshold {threshold})")
    if battery is None:
        print("   ⚠️  Battery status unavailable")
    else:
        print(f"   {battery_icon} Battery: {state.battery_warning.name} "
              f"(bucket {state.previous_bucket}, plugged {state.previous_plugged})")


async def main():
    print("🔥 Initializing power warnings...")
    engine = create_warning_engine()
    engine.update_interval = 5.0
    engine.register_poll_callback(print_poll)

    await engine.start()
    print("✅ Monitoring started!\n")

    try:
        await asyncio.sleep(120)

    except KeyboardInterrupt:
        print("\n⚠️  Interrupted by user")

    finally:
        print("\n🛑 Stopping monitoring...")
        await engine.stop()

        stats = engine.get_statistics()
        print("📊 Statistics:")
        print(f"   Polls: {stats['polls_completed']}")
        print(f"   Read failures: {stats['read_failures']}")
        for event in engine.get_events():
            print(f"   {event.channel.name} {event.action}: {event.description}")

if __name__ == "__main__":
    asyncio.run(main())
