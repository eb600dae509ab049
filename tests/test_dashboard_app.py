import asyncio

import pytest

from atelier import commands
from atelier.alerts import AlertKind
from atelier.config import SOUND_PREFERENCE_KEY
from atelier.dashboard_app import DashboardApp
from atelier.login_modal import LoginModal
from atelier.models import InventoryItem
from atelier.realtime import INVENTORY, ORDERS, SETTINGS, SETTINGS_DOC_ID, RealtimeStore


async def log_in(pilot, username="admin", password="admin123"):
    await pilot.press(*username)
    await pilot.press("down")
    await pilot.press(*password)
    await pilot.press("enter")
    await pilot.pause()


async def eventually(check, attempts=200):
    for _ in range(attempts):
        if await check():
            return True
        await asyncio.sleep(0.01)
    return False


@pytest.mark.asyncio
async def test_existing_orders_are_quiet_and_new_order_raises_banner(store, make_order):
    await commands.create_order(store, make_order("o1", date=1000))
    await commands.add_inventory_item(store, InventoryItem(id="t", name="Tomates", quantity=25, unit="kg", threshold=8))

    async with RealtimeStore(store) as realtime:
        await asyncio.wait_for(realtime.ready.wait(), timeout=2)
        app = DashboardApp(realtime)
        async with app.run_test() as pilot:
            await pilot.pause()
            assert isinstance(app.screen, LoginModal)
            assert app.alerts.current is None

            await log_in(pilot)
            assert not isinstance(app.screen, LoginModal)

            await commands.create_order(store, make_order("o2", date=2000, total=9000))

            async def alerted():
                await store.settle()
                return app.alerts.current is not None

            assert await eventually(alerted)
            assert app.alerts.current.kind == AlertKind.ORDER
            assert "9 000" in app.alerts.current.message

            await pilot.press("escape")
            assert app.alerts.current is None


@pytest.mark.asyncio
async def test_low_stock_present_at_startup_raises_stock_alert(store):
    await commands.add_inventory_item(store, InventoryItem(id="e", name="Oeufs", quantity=1, unit="plateaux", threshold=4))

    async with RealtimeStore(store) as realtime:
        await asyncio.wait_for(realtime.ready.wait(), timeout=2)
        assert realtime.has_snapshot(INVENTORY)
        app = DashboardApp(realtime)
        async with app.run_test() as pilot:
            await pilot.pause()
            assert app.alerts.current is not None
            assert app.alerts.current.kind == AlertKind.STOCK


@pytest.mark.asyncio
async def test_wrong_password_keeps_the_login_gate(store):
    async with RealtimeStore(store) as realtime:
        await asyncio.wait_for(realtime.ready.wait(), timeout=2)
        app = DashboardApp(realtime)
        async with app.run_test() as pilot:
            await log_in(pilot, password="nope")

            assert isinstance(app.screen, LoginModal)
            assert app.screen.error
            assert app.screen.password == ""


@pytest.mark.asyncio
async def test_verified_staff_account_can_log_in(store):
    await commands.add_staff_user(store, "Moussa", "moussa@example.com", "pw", "Caissier")

    async with RealtimeStore(store) as realtime:
        await asyncio.wait_for(realtime.ready.wait(), timeout=2)
        app = DashboardApp(realtime)
        async with app.run_test() as pilot:
            await log_in(pilot, username="Moussa", password="pw")

            assert not isinstance(app.screen, LoginModal)


@pytest.mark.asyncio
async def test_status_keys_move_the_selected_order_forward(store, make_order):
    await commands.create_order(store, make_order("o1"))

    async with RealtimeStore(store) as realtime:
        await asyncio.wait_for(realtime.ready.wait(), timeout=2)
        app = DashboardApp(realtime)
        async with app.run_test() as pilot:
            await log_in(pilot)

            await pilot.press("c")

            async def confirmed():
                return (await store.get(ORDERS, "o1"))["status"] == "CONFIRMED"

            assert await eventually(confirmed)

            # Delivered is not reachable from confirmed.
            await pilot.press("d")
            await pilot.pause()
            assert (await store.get(ORDERS, "o1"))["status"] == "CONFIRMED"


@pytest.mark.asyncio
async def test_sound_and_maintenance_toggles(store):
    async with RealtimeStore(store) as realtime:
        await asyncio.wait_for(realtime.ready.wait(), timeout=2)
        app = DashboardApp(realtime)
        async with app.run_test() as pilot:
            await log_in(pilot)
            assert not app.audio.enabled

            await pilot.press("a")
            await pilot.pause()
            assert app.audio.enabled
            assert store.get_preference(SOUND_PREFERENCE_KEY) == "true"

            await pilot.press("m")

            async def paused():
                doc = await store.get(SETTINGS, SETTINGS_DOC_ID)
                await store.settle()
                return doc is not None and doc.get("isMaintenanceMode") is True and realtime.settings.is_maintenance_mode

            assert await eventually(paused)
            await pilot.pause()
            assert app.sub_title == "MAINTENANCE"
