import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.database.connection import Base, get_db, init_db
from app.models.store import Store, Item
from app.models.shopping_list import ListItem
from app.models.price_submission import PriceSubmission

TEST_DB_URL = "sqlite:///:memory:"

HOUSEHOLD = "HOME42"


@pytest.fixture()
def engine():
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    from app.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def acme(db):
    store = Store(name="Acme")
    db.add(store)
    db.commit()
    db.refresh(store)
    return store


@pytest.fixture()
def costco(db):
    store = Store(name="Costco Wholesale")
    db.add(store)
    db.commit()
    db.refresh(store)
    return store


@pytest.fixture()
def add_to_list(db):
    """
    Creates the item (if needed) and an unchecked list row for it.
    """

    def _add(name: str, household_code: str = HOUSEHOLD, quantity: int = 1) -> ListItem:
        item = (
            db.query(Item)
            .filter(Item.household_code == household_code, Item.name == name)
            .first()
        )
        if not item:
            item = Item(household_code=household_code, name=name)
            db.add(item)
            db.flush()
        row = ListItem(
            item_id=item.id,
            item_name=name,
            quantity=quantity,
            household_code=household_code,
            checked=False,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    return _add


@pytest.fixture()
def submission(db):
    sub = PriceSubmission(
        household_code=HOUSEHOLD,
        user_id="user-7",
        item_name="Milk",
        price=3.49,
        verified=False,
    )
    db.add(sub)
    db.commit()
    db.refresh(sub)
    return sub
