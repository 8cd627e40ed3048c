import pytest
from sqlalchemy import Column, Integer, String, Table, create_engine, insert
from sqlalchemy.orm import Session, declarative_base

from sqlaseek import ASC, DESC, SortableMixin, SortRegistry

ECHO = False

Base = declarative_base()


class Book(SortableMixin, Base):
    __tablename__ = "book"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    a = Column(Integer, nullable=False)
    b = Column(Integer, nullable=False)
    isbn = Column("isbn_code", String(32), nullable=False)

    def __repr__(self):
        return f"Book(id={self.id!r}, a={self.a!r}, b={self.b!r})"


class Author(Base):
    __tablename__ = "author"
    __sort_tag__ = "writer"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)


Pair = Table(
    "pair",
    Base.metadata,
    Column("id", Integer, primary_key=True),
    Column("col1", String(8), nullable=False),
    Column("col2", Integer, nullable=False),
)

Point = Table(
    "point",
    Base.metadata,
    Column("id", Integer, primary_key=True),
    Column("a", Integer, nullable=False),
    Column("b", Integer, nullable=False),
)

Event = Table(
    "event",
    Base.metadata,
    Column("Id", Integer, primary_key=True),
    Column("CreatedAt", Integer, nullable=False),
)

BOOK_COUNT = 20


def make_books():
    return [
        Book(
            id=x + 1,
            name="Book {}".format(x % 7),
            a=x % 3,
            b=(x * 7) % 5,
            isbn="isbn-{:03d}".format(BOOK_COUNT - x),
        )
        for x in range(BOOK_COUNT)
    ]


@pytest.fixture
def engine():
    e = create_engine("sqlite://", echo=ECHO)
    Base.metadata.create_all(e)
    with Session(e) as s:
        s.add_all(make_books())
        s.add_all([Author(id=i + 1, name="Author {}".format(i)) for i in range(4)])
        s.execute(
            insert(Pair),
            [
                dict(id=1, col1="A", col2=1),
                dict(id=2, col1="A", col2=2),
                dict(id=3, col1="B", col2=1),
            ],
        )
        s.execute(
            insert(Point),
            [dict(id=1, a=1, b=5), dict(id=2, a=1, b=7), dict(id=3, a=2, b=1)],
        )
        s.execute(
            insert(Event),
            [dict(Id=i + 1, CreatedAt=(i * 3) % 5) for i in range(5)],
        )
        s.commit()
    yield e
    e.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def registry():
    r = SortRegistry()
    r.register(Book, ["a", "b", "id"], [ASC, DESC, ASC], default=True)
    r.register_order(Book, "name, id")
    r.register_order(Book, "isbn_code desc")
    r.register_order("pair", "col1 ASC, col2 ASC", default=True)
    r.register_order("point", "a, b", default=True)
    r.register_order("event", "CreatedAt DESC, Id", default=True)
    Book.__sort_registry__ = r
    yield r
    Book.__sort_registry__ = None
