import os, sys, pytest
# Ensure backend directory is on path so 'furfolio' can be imported without installation
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from furfolio import create_app, get_db
from furfolio.models.entities import Base
import furfolio.models.audit  # noqa: F401  registers audit_logs before create_all


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    app = create_app({
        'TESTING': True,
        'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
        'JWT_SECRET_KEY': 'test-secret-key-with-enough-length-for-hs256',
        'ALLOW_SUPERUSER_OVERRIDE': False,
        'PERSIST_AUDIT': True,
    })
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def app_context(app_instance):
    with app_instance.app_context():
        yield app_instance


@pytest.fixture()
def clean_db(app_instance):
    """Empty every table; integrity checks read the whole database."""
    session = get_db()
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.expunge_all()
    yield session
