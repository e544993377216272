import os, sys, pytest
# Ensure backend directory is on path so 'rbac_core' can be imported without installing
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
import rbac_core
from rbac_core import create_app, get_db
from rbac_core.models.authz import Base
# Import all model modules to ensure tables are registered before create_all
import rbac_core.models.module_access  # noqa: F401


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    os.environ['DATABASE_URL'] = 'sqlite+pysqlite:///:memory:'
    app = create_app({'DATABASE_URL': 'sqlite+pysqlite:///:memory:', 'JWT_SECRET_KEY': 'test-secret-key-long-enough-for-hs256'})
    with app.app_context():
        Base.metadata.create_all(get_db().get_bind())
    yield app


@pytest.fixture(autouse=True)
def fresh_schema(app_instance):
    """Every test starts from empty tables."""
    rbac_core.SessionLocal.remove()
    engine = rbac_core.db_engine
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield
    rbac_core.SessionLocal.remove()


@pytest.fixture()
def session(app_instance):
    return get_db()


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def auth_headers(app_instance):
    """Factory: bearer headers for a user id (identity stored as string)."""
    from flask_jwt_extended import create_access_token

    def make(user_id):
        with app_instance.app_context():
            token = create_access_token(identity=str(user_id))
        return {'Authorization': f'Bearer {token}'}
    return make
