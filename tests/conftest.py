import pytest
from decimal import Decimal

from pdv import create_app
from pdv.database import create_all, drop_all, get_session
from pdv.models import Profile, Product, Customer


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite)."""
    app = create_app('config.TestConfig')
    return app


@pytest.fixture(scope='function')
def session(app):
    """Fresh schema and database session for each test."""
    with app.app_context():
        create_all()
        session = get_session()
        yield session
        session.rollback()
        session.remove()
        drop_all()


@pytest.fixture(scope='function')
def client(app, session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def container(app, session):
    return app.extensions['pdv']


def _make_user(session, email, role, full_name):
    user = Profile(email=email, full_name=full_name, role=role, active=True)
    user.set_password('password123')
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(scope='function')
def vendedor(session):
    """Sales operator."""
    return _make_user(session, 'vendedor@test.com', 'vendedor', 'Maria Vendedora')


@pytest.fixture(scope='function')
def admin(session):
    """Administrator."""
    return _make_user(session, 'admin@test.com', 'admin', 'Ana Admin')


def _login(client, email):
    response = client.post('/auth/login', json={'email': email, 'password': 'password123'})
    assert response.status_code == 200
    return client


@pytest.fixture(scope='function')
def auth_client(client, vendedor):
    """Test client logged in as the sales operator."""
    return _login(client, vendedor.email)


@pytest.fixture(scope='function')
def admin_client(client, admin):
    """Test client logged in as the administrator."""
    return _login(client, admin.email)


def _make_product(session, **fields):
    product = Product(**fields)
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


@pytest.fixture(scope='function')
def product_x(session):
    """Batom Matte: price 10.00, cost 6.00, stock 10."""
    return _make_product(
        session, name='Batom Matte', price=Decimal('10.00'), cost=Decimal('6.00'),
        stock_quantity=10, min_stock_level=2, barcode='7890000000011', active=True,
    )


@pytest.fixture(scope='function')
def product_y(session):
    """Perfume Floral: price 25.00, cost 15.00, stock 5."""
    return _make_product(
        session, name='Perfume Floral', price=Decimal('25.00'), cost=Decimal('15.00'),
        stock_quantity=5, min_stock_level=1, barcode='7890000000028', active=True,
    )


@pytest.fixture(scope='function')
def product_out_of_stock(session):
    return _make_product(
        session, name='Base Líquida', price=Decimal('40.00'), cost=Decimal('22.00'),
        stock_quantity=0, min_stock_level=3, barcode='7890000000035', active=True,
    )


@pytest.fixture(scope='function')
def customer(session, vendedor):
    customer = Customer(name='Joana Cliente', email='joana@test.com', phone='11999990000',
                        created_by=vendedor.id)
    session.add(customer)
    session.commit()
    session.refresh(customer)
    return customer
