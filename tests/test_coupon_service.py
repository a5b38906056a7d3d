"""
Tests de verificación de cupones y del orden de los intentos.
"""
import asyncio
import json

import httpx
import pytest

from core.cart_store import CartStore
from core.coupon_service import CartEmptyError, CouponSequencer, CouponService, CouponVerificationError
from core.storefront_api import StorefrontClient
from schemas.carts import Coupon


def make_service(handler):
    client = StorefrontClient("http://storefront.test/api", transport=httpx.MockTransport(handler))
    return CouponService(client)


class TestCouponService:
    """Verificación contra la API de cupones"""

    def test_cupon_valido(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={
                "status": "success",
                "message": "Coupon applied successfully",
                "coupon": {"id": 3, "code": "save20", "type": "fixed", "value": 20, "discount": 20, "free_shipping": False}
            })

        coupon = asyncio.run(make_service(handler).verify(" save20 ", 160.0, [7, 8]))

        assert coupon.code == "SAVE20"
        assert coupon.discount == 20
        assert requests[0].url.path == "/api/coupon/apply"
        assert json.loads(requests[0].content) == {"code": "save20", "subtotal": 160.0, "product_ids": [7, 8]}

    def test_cupon_rechazado_usa_mensaje_del_servidor(self):
        def handler(request):
            return httpx.Response(422, json={"status": "error", "message": "Coupon has expired"})

        with pytest.raises(CouponVerificationError) as exc:
            asyncio.run(make_service(handler).verify("OLD", 50.0, [1]))

        assert exc.value.message == "Coupon has expired"
        assert exc.value.status_code == 422

    def test_respuesta_sin_exito(self):
        def handler(request):
            return httpx.Response(200, json={"status": "error", "message": "Minimum order not met"})

        with pytest.raises(CouponVerificationError) as exc:
            asyncio.run(make_service(handler).verify("MIN100", 50.0, [1]))

        assert exc.value.message == "Minimum order not met"

    def test_error_de_red(self):
        def handler(request):
            raise httpx.ConnectError("sin conexión", request=request)

        with pytest.raises(CouponVerificationError) as exc:
            asyncio.run(make_service(handler).verify("SAVE20", 50.0, [1]))

        assert exc.value.message == "Failed to apply coupon"

    def test_cupon_malformado(self):
        def handler(request):
            return httpx.Response(200, json={"status": "success", "coupon": {"code": "X", "type": "bogus"}})

        with pytest.raises(CouponVerificationError):
            asyncio.run(make_service(handler).verify("X", 50.0, [1]))


class TestCouponSequencer:
    """Solo el intento más reciente aplica su resultado"""

    def test_resultado_viejo_se_descarta(self, storage, product):
        CartStore(storage, identity={"id": 1}).add_item(product, 2)
        sequencer = CouponSequencer()

        async def scenario():
            gate = asyncio.Event()

            async def verify_old():
                await gate.wait()
                return Coupon(code="old", type="fixed", value=5, discount=5)

            async def verify_new():
                return Coupon(code="new", type="fixed", value=10, discount=10)

            old_store = CartStore(storage, identity={"id": 1})
            new_store = CartStore(storage, identity={"id": 1})

            old_task = asyncio.create_task(sequencer.apply(old_store, verify_old))
            await asyncio.sleep(0)
            new_result = await sequencer.apply(new_store, verify_new)
            gate.set()
            old_result = await old_task
            return old_result, new_result

        old_result, new_result = asyncio.run(scenario())

        assert old_result is None
        assert new_result.code == "NEW"
        saved = CartStore(storage, identity={"id": 1})
        assert saved.coupon.code == "NEW"
        assert saved.discount == 10

    def test_carritos_distintos_no_compiten(self, storage, product):
        sequencer = CouponSequencer()
        store_a = CartStore(storage, identity={"id": 1})
        store_b = CartStore(storage, identity={"id": 2})
        store_a.add_item(product, 1)
        store_b.add_item(product, 1)

        async def verify():
            return Coupon(code="save20", type="fixed", discount=20)

        async def scenario():
            return await asyncio.gather(sequencer.apply(store_a, verify), sequencer.apply(store_b, verify))

        result_a, result_b = asyncio.run(scenario())

        assert result_a is not None and result_b is not None
        assert store_a.discount == 20
        assert store_b.discount == 20

    def test_aplica_sobre_el_carrito_actualizado(self, storage, product):
        """Cambios hechos mientras se verificaba el cupón no se pierden"""
        sequencer = CouponSequencer()
        store = CartStore(storage, identity={"id": 1})
        store.add_item(product, 1)

        async def verify():
            CartStore(storage, identity={"id": 1}).add_item({"id": 8, "selling_price": 40}, 1)
            return Coupon(code="save20", type="fixed", discount=20)

        asyncio.run(sequencer.apply(store, verify))

        assert store.total_items == 2
        assert store.final_total == 100

    def test_error_de_verificacion_se_propaga(self, storage, product):
        sequencer = CouponSequencer()
        store = CartStore(storage)
        store.add_item(product, 1)

        async def verify():
            raise CouponVerificationError("Invalid coupon")

        with pytest.raises(CouponVerificationError):
            asyncio.run(sequencer.apply(store, verify))

        assert store.coupon is None
        assert sequencer.is_current(store.storage_key, 1) is False

    def test_carrito_vaciado_durante_verificacion(self, storage, product):
        """Si otra petición vacía el carrito, el cupón no se reporta como aplicado"""
        sequencer = CouponSequencer()
        store = CartStore(storage, identity={"id": 1})
        store.add_item(product, 1)

        async def verify():
            CartStore(storage, identity={"id": 1}).remove_item(7)
            return Coupon(code="save20", type="fixed", discount=20)

        with pytest.raises(CartEmptyError):
            asyncio.run(sequencer.apply(store, verify))

        assert store.items == []
        assert store.coupon is None
        assert CartStore(storage, identity={"id": 1}).coupon is None
        assert sequencer.is_current(store.storage_key, 1) is False

    def test_cancelacion_libera_el_turno(self, storage, product):
        sequencer = CouponSequencer()
        store = CartStore(storage, identity={"id": 1})
        store.add_item(product, 1)

        async def scenario():
            started = asyncio.Event()

            async def verify():
                started.set()
                await asyncio.Event().wait()

            task = asyncio.create_task(sequencer.apply(store, verify))
            await started.wait()
            assert sequencer.is_current(store.storage_key, 1)

            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())

        assert sequencer.is_current(store.storage_key, 1) is False
        assert store.coupon is None
