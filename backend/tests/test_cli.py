# Overview: Pytest coverage for the Flask CLI command groups.

from decimal import Decimal

from stockledger.models import Product, StockMovement, User
from stockledger.services import products_service
from stockledger.validation import parse_pack_attributes

from conftest import PACK_PAYLOAD, PASSWORD


class TestUserCommands:

    def test_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            'users', 'create',
            '--full-name', 'Cli Owner',
            '--email', 'cli@shop.test',
            '--password', PASSWORD,
        ])
        assert result.exit_code == 0, result.output
        assert 'PASS Created user' in result.output
        assert db_session.query(User).filter_by(email='cli@shop.test').count() == 1

        result = runner.invoke(args=['users', 'list'])
        assert result.exit_code == 0
        assert 'cli@shop.test' in result.output

    def test_create_rejects_weak_password(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            'users', 'create',
            '--full-name', 'Cli Owner',
            '--email', 'cli@shop.test',
            '--password', 'weak',
        ])
        assert result.exit_code == 1
        assert 'FAIL' in result.output
        assert db_session.query(User).count() == 0

    def test_list_empty(self, app, db_session):
        result = app.test_cli_runner().invoke(args=['users', 'list'])
        assert 'No users found.' in result.output


class TestStockCommands:

    def test_stock_init_backfills(self, app, db_session, user_a):
        product = products_service.create_pack_product(owner_id=user_a.id, attrs=parse_pack_attributes(PACK_PAYLOAD))

        runner = app.test_cli_runner()
        result = runner.invoke(args=['stock', 'init'])
        assert result.exit_code == 0, result.output
        assert 'Initialized stock for 1 products' in result.output

        product = db_session.get(Product, product.id)
        assert product.current_stock == Decimal('40')
        assert db_session.query(StockMovement).filter_by(reason='INITIAL_STOCK').count() == 1

        result = runner.invoke(args=['stock', 'init'])
        assert 'No products need stock initialization.' in result.output

    def test_reset_db_requires_confirmation(self, app, db_session, user_a):
        result = app.test_cli_runner().invoke(args=['system', 'reset-db'], input='n\n')
        assert result.exit_code != 0
        assert db_session.query(User).count() == 1
