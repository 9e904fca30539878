# Overview: Pytest coverage for store, category, product, stock and cart-pricing routes.

from retailpos.models import StockMovement
from retailpos.services import stock_service


class TestStoreRoutes:
    def test_super_admin_creates_store(self, client, super_admin, headers_for):
        response = client.post('/api/stores', headers=headers_for(super_admin), json={
            'name': 'Store C', 'owner_name': 'Chandra', 'currency': 'usd', 'global_discount_bps': 500,
        })
        assert response.status_code == 201
        assert response.json['currency'] == 'USD'

    def test_store_admin_cannot_create_store(self, client, admin_a, headers_for):
        response = client.post('/api/stores', headers=headers_for(admin_a), json={'name': 'X', 'owner_name': 'Y'})
        assert response.status_code == 403

    def test_invalid_store_payload(self, client, super_admin, headers_for):
        headers = headers_for(super_admin)
        assert client.post('/api/stores', headers=headers, json={'name': 'X'}).status_code == 400
        assert client.post('/api/stores', headers=headers, json={
            'name': 'X', 'owner_name': 'Y', 'currency': 'GBP',
        }).status_code == 400
        assert client.post('/api/stores', headers=headers, json={
            'name': 'X', 'owner_name': 'Y', 'global_discount_bps': 10001,
        }).status_code == 400

    def test_list_is_scoped(self, client, admin_a, super_admin, store_a, store_b, headers_for):
        own = client.get('/api/stores', headers=headers_for(admin_a))
        assert [s['id'] for s in own.json] == [store_a.id]

        everything = client.get('/api/stores', headers=headers_for(super_admin))
        assert {s['id'] for s in everything.json} == {store_a.id, store_b.id}

    def test_other_store_is_forbidden(self, client, admin_a, store_b, headers_for):
        assert client.get(f'/api/stores/{store_b.id}', headers=headers_for(admin_a)).status_code == 403
        assert client.get('/api/stores/999999', headers=headers_for(admin_a)).status_code == 404

    def test_update_store(self, client, admin_a, store_a, headers_for):
        response = client.put(f'/api/stores/{store_a.id}', headers=headers_for(admin_a), json={
            'global_discount_bps': 250,
        })
        assert response.status_code == 200
        assert response.json['global_discount_bps'] == 250


class TestCategoryRoutes:
    def test_create_and_list(self, client, admin_a, store_a, headers_for):
        headers = headers_for(admin_a)
        created = client.post('/api/categories', headers=headers, json={
            'name': 'Dairy', 'default_gst_bps': 500, 'low_stock_threshold': 4,
        })
        assert created.status_code == 201
        assert created.json['store_id'] == store_a.id

        listed = client.get('/api/categories', headers=headers)
        assert [c['name'] for c in listed.json] == ['Dairy']

    def test_duplicate_name_conflicts(self, client, admin_a, category_a, headers_for):
        response = client.post('/api/categories', headers=headers_for(admin_a), json={'name': category_a.name})
        assert response.status_code == 409

    def test_percent_out_of_range(self, client, admin_a, store_a, headers_for):
        response = client.post('/api/categories', headers=headers_for(admin_a), json={
            'name': 'Bad', 'default_gst_bps': 20000,
        })
        assert response.status_code == 400

    def test_delete_blocked_while_in_use(self, client, admin_a, category_a, product_a, headers_for):
        response = client.delete(f'/api/categories/{category_a.id}', headers=headers_for(admin_a))
        assert response.status_code == 409


class TestProductRoutes:
    def test_create_records_initial_stock(self, client, admin_a, category_a, headers_for, db_session):
        response = client.post('/api/products', headers=headers_for(admin_a), json={
            'category_id': category_a.id, 'name': 'Pen', 'sku': 'PN-1', 'price_cents': 1500, 'stock_qty': 40,
        })

        assert response.status_code == 201
        movements = db_session.query(StockMovement).filter_by(product_id=response.json['id']).all()
        assert [(m.type, m.quantity_delta) for m in movements] == [('ADJUST', 40)]

    def test_validation(self, client, admin_a, category_a, category_b, headers_for):
        headers = headers_for(admin_a)
        base = {'category_id': category_a.id, 'name': 'Pen', 'price_cents': 1500}

        assert client.post('/api/products', headers=headers, json={**base, 'price_cents': 15.5}).status_code == 400
        assert client.post('/api/products', headers=headers, json={**base, 'stock_qty': -1}).status_code == 400
        assert client.post('/api/products', headers=headers, json={**base, 'tax_override_bps': 10001}).status_code == 400
        assert client.post('/api/products', headers=headers, json={**base, 'version_id': 7}).status_code == 400
        assert client.post('/api/products', headers=headers, json={
            **base, 'category_id': category_b.id,
        }).status_code == 400

    def test_duplicate_sku_conflicts(self, client, admin_a, category_a, product_a, headers_for):
        response = client.post('/api/products', headers=headers_for(admin_a), json={
            'category_id': category_a.id, 'name': 'Other', 'sku': product_a.sku, 'price_cents': 100,
        })
        assert response.status_code == 409

    def test_stock_cannot_be_set_directly(self, client, admin_a, product_a, headers_for):
        response = client.put(f'/api/products/{product_a.id}', headers=headers_for(admin_a), json={'stock_qty': 99})
        assert response.status_code == 400
        assert stock_service.get_quantity(product_a.id) == 1

    def test_stock_adjustment(self, client, admin_a, product_a, headers_for):
        headers = headers_for(admin_a)

        short = client.patch(f'/api/products/{product_a.id}/stock', headers=headers, json={'delta': -5})
        assert short.status_code == 400
        assert short.json['code'] == 'InsufficientStock'

        ok = client.patch(f'/api/products/{product_a.id}/stock', headers=headers, json={'delta': 4, 'note': 'Delivery'})
        assert ok.status_code == 200
        assert ok.json['stock_qty'] == 5

        movements = client.get(f'/api/products/{product_a.id}/movements', headers=headers)
        assert movements.json[0]['note'] == 'Delivery'

    def test_low_stock_filter(self, client, admin_a, store_a, category_a, product_a, product_factory, headers_for):
        product_factory(store_a, category_a, name='Pencil', sku='PC-1', stock_qty=500)

        response = client.get('/api/products?low_stock=1', headers=headers_for(admin_a))

        assert [p['id'] for p in response.json] == [product_a.id]

    def test_other_store_product_is_hidden(self, client, admin_a, product_b, headers_for):
        headers = headers_for(admin_a)
        assert client.get(f'/api/products/{product_b.id}', headers=headers).status_code == 404
        assert client.patch(f'/api/products/{product_b.id}/stock', headers=headers, json={'delta': 1}).status_code == 404

    def test_delete_keeps_invoice_snapshot(self, client, admin_a, cashier_a, store_a, product_a, headers_for):
        from retailpos.services.invoice_service import get_invoice

        created = client.post('/api/invoices', headers=headers_for(cashier_a), json={
            'storeId': store_a.id,
            'items': [{'productId': product_a.id, 'name': 'Notebook', 'quantity': 1,
                       'price': 100, 'appliedTaxPercent': 18, 'appliedDiscountPercent': 0}],
        })
        assert created.status_code == 201

        assert client.delete(f'/api/products/{product_a.id}', headers=headers_for(admin_a)).status_code == 200

        (line,) = get_invoice(created.json['invoiceId']).items
        assert line.product_id is None
        assert line.product_name == 'Notebook'
        assert line.line_total_cents == 11800


class TestCartPricing:
    def test_price_cart(self, client, cashier_a, store_a, category_a, product_factory, headers_for):
        pen = product_factory(store_a, category_a, name='Pen', sku='PN-1', price_cents=999, stock_qty=10)

        response = client.post('/api/carts/price', headers=headers_for(cashier_a), json={
            'items': [{'product_id': pen.id, 'quantity': 3, 'discount_percent': 10}],
        })

        assert response.status_code == 200
        (item,) = response.json['items']
        assert item['applied_tax_bps'] == 1800
        assert item['applied_discount_bps'] == 1000
        assert item['line_total_cents'] == 3183
        assert response.json['totals']['grand_total_cents'] == 3183
        assert stock_service.get_quantity(pen.id) == 10

    def test_out_of_stock(self, client, cashier_a, product_a, headers_for):
        response = client.post('/api/carts/price', headers=headers_for(cashier_a), json={
            'items': [{'product_id': product_a.id, 'quantity': 2}],
        })
        assert response.status_code == 400
        assert response.json['code'] == 'OutOfStock'

    def test_unknown_product(self, client, cashier_a, store_a, headers_for):
        response = client.post('/api/carts/price', headers=headers_for(cashier_a), json={
            'items': [{'product_id': 999999}],
        })
        assert response.status_code == 400
        assert response.json['code'] == 'ProductNotFound'
