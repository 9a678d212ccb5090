import pytest

from shop_service.app.errors import Conflict, InsufficientStock, NotFound
from shop_service.app.seed import DEMO_PRODUCTS
from shop_service.app.stores import AccountStore, CatalogStore, OrderStore


class TestCatalogStore:
    def test_lists_seeded_products_in_id_order(self, db):
        products = CatalogStore(db).list()
        assert [p.id for p in products] == [1, 2, 3, 4, 5, 6]
        assert [p.name for p in products] == [p["name"] for p in DEMO_PRODUCTS]

    def test_get_unknown_product(self, db):
        with pytest.raises(NotFound):
            CatalogStore(db).get(99)

    def test_create_assigns_next_id_and_image(self, db):
        product = CatalogStore(db).create("Desk Lamp", 39.5, "LED lamp", "Home", 12)
        assert product.id == 7
        assert product.image == "product7.jpg"

    def test_decrement_stock(self, db):
        catalog = CatalogStore(db)
        catalog.decrement_stock(1, 5)
        assert catalog.get(1).stock == 45

    def test_decrement_refuses_to_go_negative(self, db):
        catalog = CatalogStore(db)
        with pytest.raises(InsufficientStock) as info:
            catalog.decrement_stock(5, 26)
        assert info.value.available == 25
        assert info.value.requested == 26
        assert catalog.get(5).stock == 25

    def test_decrement_to_exactly_zero(self, db):
        catalog = CatalogStore(db)
        catalog.decrement_stock(5, 25)
        assert catalog.get(5).stock == 0


class TestAccountStore:
    def test_create_and_find(self, db):
        accounts = AccountStore(db)
        user = accounts.create("Alice", "alice@example.com", "hash")
        assert accounts.find_by_email("alice@example.com").id == user.id
        assert accounts.find_by_id(user.id).name == "Alice"
        assert user.created_at is not None

    def test_find_by_email_absent(self, db):
        assert AccountStore(db).find_by_email("nobody@example.com") is None

    def test_find_by_id_missing(self, db):
        with pytest.raises(NotFound):
            AccountStore(db).find_by_id(42)

    def test_duplicate_email_conflicts(self, db):
        accounts = AccountStore(db)
        accounts.create("Alice", "alice@example.com", "hash")
        with pytest.raises(Conflict):
            accounts.create("Another Alice", "alice@example.com", "hash2")

    def test_ids_are_not_reused(self, db):
        accounts = AccountStore(db)
        first = accounts.create("A", "a@example.com", "h")
        second = accounts.create("B", "b@example.com", "h")
        assert second.id == first.id + 1

    def test_update_name(self, db):
        accounts = AccountStore(db)
        user = accounts.create("Alice", "alice@example.com", "hash")
        accounts.update_name(user.id, "Alice Smith")
        assert accounts.find_by_id(user.id).name == "Alice Smith"


class TestOrderStore:
    def test_lines_keep_request_order(self, db):
        order = OrderStore(db).add(1, [(3, 1), (1, 2), (2, 1)], 100.0)
        assert [(i.product_id, i.quantity) for i in order.items] == [(3, 1), (1, 2), (2, 1)]
        assert order.status == "confirmed"

    def test_list_for_user_filters_by_owner(self, db):
        orders = OrderStore(db)
        first = orders.add(1, [(1, 1)], 699.99)
        orders.add(2, [(2, 1)], 1299.99)
        third = orders.add(1, [(3, 1)], 199.99)
        assert [o.id for o in orders.list_for_user(1)] == [first.id, third.id]

    def test_get_requires_owner(self, db):
        orders = OrderStore(db)
        order = orders.add(1, [(1, 1)], 699.99)
        assert orders.get(order.id, 1).id == order.id
        with pytest.raises(NotFound):
            orders.get(order.id, 2)
        with pytest.raises(NotFound):
            orders.get(order.id + 100, 1)
