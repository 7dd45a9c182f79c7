import os, sys, pytest
# Ensure backend directory is on path so 'vendorhub' and 'seeds' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
import vendorhub
from vendorhub import create_app, get_db
from vendorhub.models.authz import Base
# Import all model modules to ensure tables are registered before create_all
import vendorhub.models.vendor  # noqa: F401
import vendorhub.models.delegation  # noqa: F401
import vendorhub.models.audit  # noqa: F401

TEST_CONFIG = {
    'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
    'JWT_SECRET_KEY': 'test-secret-key-that-is-long-enough-for-hs256',
    'DELEGATION_REJECT_DUPLICATE_ACTIVE': False,
    'LOG_LEVEL': 'DEBUG',
}

@pytest.fixture(scope='session', autouse=True)
def app_instance():
    app = create_app(TEST_CONFIG)
    # After app and blueprints are registered, ensure all tables exist
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app

@pytest.fixture(autouse=True)
def fresh_schema(app_instance):
    # Every test starts from empty tables
    vendorhub.SessionLocal.remove()
    Base.metadata.drop_all(vendorhub.db_engine)
    Base.metadata.create_all(vendorhub.db_engine)
    yield
    vendorhub.SessionLocal.remove()

@pytest.fixture()
def app_context(app_instance):
    with app_instance.app_context():
        yield app_instance

@pytest.fixture()
def client(app_context):
    return app_context.test_client()
