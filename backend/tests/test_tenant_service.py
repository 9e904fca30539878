# Overview: Pytest coverage for store scoping helpers.

import pytest

from retailpos.models import Category
from retailpos.services.tenant_service import (
    TenantAccessError,
    accessible_store_ids,
    can_access_store,
    get_in_scope,
    require_store_access,
    resolve_store_id,
)


class TestStoreAccess:
    def test_own_store_only(self, cashier_a, store_a, store_b):
        assert can_access_store(cashier_a, store_a.id)
        assert not can_access_store(cashier_a, store_b.id)
        assert not can_access_store(None, store_a.id)

    def test_super_admin_reaches_every_store(self, super_admin, store_a, store_b):
        assert can_access_store(super_admin, store_b.id)
        assert accessible_store_ids(super_admin) is None

    def test_require_store_access_status_codes(self, cashier_a, store_b):
        with pytest.raises(TenantAccessError) as missing:
            require_store_access(999_999, cashier_a)
        assert missing.value.status_code == 404

        with pytest.raises(TenantAccessError) as forbidden:
            require_store_access(store_b.id, cashier_a)
        assert forbidden.value.status_code == 403

        with pytest.raises(TenantAccessError) as absent:
            require_store_access(None, cashier_a)
        assert absent.value.status_code == 400

    def test_resolve_defaults_to_own_store(self, cashier_a, store_a):
        assert resolve_store_id(None, cashier_a) == store_a.id
        assert accessible_store_ids(cashier_a) == {store_a.id}

    def test_get_in_scope_hides_other_stores(self, cashier_a, category_a, category_b):
        assert get_in_scope(Category, category_a.id, cashier_a) is category_a
        assert get_in_scope(Category, category_b.id, cashier_a) is None
        assert get_in_scope(Category, 999_999, cashier_a) is None
