# Overview: Pytest coverage for customer and expense routes.

class TestCustomerRoutes:
    def test_create_search_update(self, client, cashier_a, store_a, headers_for):
        headers = headers_for(cashier_a)
        created = client.post('/api/customers', headers=headers, json={
            'name': 'Asha Rao', 'mobile': '9876543210', 'gender': 'female',
        })
        assert created.status_code == 201
        assert created.json['gender'] == 'FEMALE'
        assert created.json['store_id'] == store_a.id

        by_mobile = client.get('/api/customers/search?q=98765', headers=headers)
        assert [c['id'] for c in by_mobile.json] == [created.json['id']]
        by_name = client.get('/api/customers/search?q=asha', headers=headers)
        assert len(by_name.json) == 1
        assert client.get('/api/customers/search?q=', headers=headers).json == []

        updated = client.put(f"/api/customers/{created.json['id']}", headers=headers, json={'place': 'Pune'})
        assert updated.status_code == 200
        assert updated.json['place'] == 'Pune'

    def test_duplicate_mobile_conflicts(self, client, cashier_a, headers_for):
        headers = headers_for(cashier_a)
        first = client.post('/api/customers', headers=headers, json={'name': 'A', 'mobile': '9000000001'})

        second = client.post('/api/customers', headers=headers, json={'name': 'B', 'mobile': '9000000001'})

        assert second.status_code == 409
        assert second.json['existing_customer_id'] == first.json['id']

    def test_same_mobile_in_another_store_is_fine(self, client, cashier_a, cashier_b, headers_for):
        body = {'name': 'A', 'mobile': '9000000001'}
        assert client.post('/api/customers', headers=headers_for(cashier_a), json=body).status_code == 201
        assert client.post('/api/customers', headers=headers_for(cashier_b), json=body).status_code == 201

    def test_search_limited_to_ten(self, client, cashier_a, headers_for):
        headers = headers_for(cashier_a)
        for i in range(12):
            client.post('/api/customers', headers=headers, json={'name': f'Ravi {i}', 'mobile': f'90000000{i:02d}'})

        response = client.get('/api/customers/search?q=Ravi', headers=headers)

        assert len(response.json) == 10

    def test_invalid_gender(self, client, cashier_a, headers_for):
        response = client.post('/api/customers', headers=headers_for(cashier_a), json={'name': 'A', 'gender': 'x'})
        assert response.status_code == 400

    def test_other_store_customer_hidden(self, client, cashier_a, cashier_b, headers_for):
        created = client.post('/api/customers', headers=headers_for(cashier_a), json={'name': 'A'})
        response = client.get(f"/api/customers/{created.json['id']}", headers=headers_for(cashier_b))
        assert response.status_code == 404

    def test_delete_requires_store_admin(self, client, cashier_a, admin_a, headers_for):
        created = client.post('/api/customers', headers=headers_for(cashier_a), json={'name': 'A'})
        url = f"/api/customers/{created.json['id']}"

        assert client.delete(url, headers=headers_for(cashier_a)).status_code == 403
        assert client.delete(url, headers=headers_for(admin_a)).status_code == 200
        assert client.get(url, headers=headers_for(admin_a)).status_code == 404


class TestExpenseRoutes:
    def test_create_and_filter_by_date(self, client, admin_a, headers_for):
        headers = headers_for(admin_a)
        for title, day in (('Rent', '2026-09-01'), ('Power', '2026-09-15'), ('Tea', '2026-10-02')):
            response = client.post('/api/expenses', headers=headers, json={
                'title': title, 'amount_cents': 50000, 'expense_date': day,
            })
            assert response.status_code == 201

        september = client.get('/api/expenses?from=2026-09-01&to=2026-09-30', headers=headers)
        assert [e['title'] for e in september.json] == ['Power', 'Rent']

        everything = client.get('/api/expenses', headers=headers)
        assert len(everything.json) == 3

    def test_validation(self, client, admin_a, headers_for):
        headers = headers_for(admin_a)
        assert client.post('/api/expenses', headers=headers, json={
            'title': 'Rent', 'amount_cents': -1, 'expense_date': '2026-09-01',
        }).status_code == 400
        assert client.post('/api/expenses', headers=headers, json={
            'title': 'Rent', 'amount_cents': 1, 'expense_date': 'yesterday',
        }).status_code == 400
        assert client.get('/api/expenses?from=junk', headers=headers).status_code == 400

    def test_cashier_cannot_see_expenses(self, client, cashier_a, headers_for):
        assert client.get('/api/expenses', headers=headers_for(cashier_a)).status_code == 403

    def test_delete(self, client, admin_a, headers_for):
        headers = headers_for(admin_a)
        created = client.post('/api/expenses', headers=headers, json={
            'title': 'Rent', 'amount_cents': 100, 'expense_date': '2026-09-01',
        })
        assert client.delete(f"/api/expenses/{created.json['id']}", headers=headers).status_code == 200
        assert client.get('/api/expenses', headers=headers).json == []
