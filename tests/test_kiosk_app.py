import asyncio

import pytest

from atelier.checkout_modal import CheckoutModal
from atelier.kiosk_app import KioskApp
from atelier.models import DiningMode
from atelier.realtime import PRODUCTS, RealtimeStore


@pytest.mark.asyncio
async def test_typing_filters_and_enter_opens_checkout(store):
    await store.add(PRODUCTS, {"name": "Penne Carbonara", "price": 4000, "category": "Pâtes", "createdAt": 2})
    await store.add(PRODUCTS, {"name": "Jus de Bissap", "price": 1000, "category": "Boissons", "createdAt": 1})

    async with RealtimeStore(store) as realtime:
        await asyncio.wait_for(realtime.ready.wait(), timeout=2)
        app = KioskApp(realtime, DiningMode.SUR_PLACE)
        async with app.run_test() as pilot:
            await pilot.press("j", "u", "s")
            assert app.search_text == "jus"
            assert [p.name for p in app._filtered_results()] == ["Jus de Bissap"]

            await pilot.press("+")
            assert app.quantity == 2

            await pilot.press("enter")
            await pilot.pause()
            assert isinstance(app.screen, CheckoutModal)
            assert app.screen.machine.total_price == 2000

            await pilot.press("escape")
            await pilot.pause()
            assert not isinstance(app.screen, CheckoutModal)
            assert app.quantity == 1
