"""Shared fixtures: an in-memory store, seeded users and logged-in sessions."""
import pytest

from contacts_core import crud
from contacts_core.auth import hash_password
from contacts_core.config import get_settings
from contacts_core.database import make_session_factory, session_scope
from contacts_core.models import Base, Role
from contacts_core.schemas import ContactCreate, ContactRead, UserCreate, UserRead
from contacts_core.session import SessionController
from contacts_console.console import Console

PASSWORD = "secret1"

SEEDED_USERS = {
    Role.TESTER: ("tester", "Tina", "Tester"),
    Role.JUNIOR_DEVELOPER: ("junior", "Jules", "Junior"),
    Role.SENIOR_DEVELOPER: ("senior", "Sam", "Senior"),
    Role.MANAGER: ("manager", "Maria", "Manager"),
}


class ScriptedConsole(Console):
    """Console fed from a list of answers; running out of answers raises EOFError."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.prompts = []
        self.output = []
        super().__init__(input_fn=self._answer, output_fn=self.output.append, secret_fn=self._answer)

    def _answer(self, prompt: str = "") -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)

    @property
    def text(self) -> str:
        return "\n".join(self.output)


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Make every test read default settings, whatever the environment holds."""
    for name in ("CONTACTS_DATABASE_URL", "CONTACTS_PAGE_SIZE", "CONTACTS_MIN_PASSWORD_LENGTH"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def session_factory():
    """A fresh in-memory SQLite store with the schema created."""
    factory = make_session_factory("sqlite://")
    engine = factory.kw["bind"]
    Base.metadata.create_all(bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def users(session_factory) -> dict[Role, UserRead]:
    """One user per role, all with the password ``PASSWORD``."""
    seeded = {}
    with session_scope(session_factory) as db:
        for role, (username, name, surname) in SEEDED_USERS.items():
            user = crud.create_user(
                db,
                UserCreate(username=username, password=PASSWORD, name=name, surname=surname, role=role),
                hash_password(PASSWORD),
            )
            seeded[role] = UserRead.model_validate(user)
    return seeded


@pytest.fixture
def login(session_factory, users):
    """Log in one of the seeded users by role."""
    def _login(role: Role) -> SessionController:
        return SessionController.login(session_factory, SEEDED_USERS[role][0], PASSWORD)
    return _login


@pytest.fixture
def tester(login) -> SessionController:
    return login(Role.TESTER)


@pytest.fixture
def junior(login) -> SessionController:
    return login(Role.JUNIOR_DEVELOPER)


@pytest.fixture
def senior(login) -> SessionController:
    return login(Role.SENIOR_DEVELOPER)


@pytest.fixture
def manager(login) -> SessionController:
    return login(Role.MANAGER)


@pytest.fixture
def make_contact(session_factory):
    """Insert a contact directly into the store, bypassing any session."""
    def _make(**fields) -> ContactRead:
        values = {"first_name": "Ada", "last_name": "Lovelace", "phone_primary": "5551234567"}
        values.update(fields)
        with session_scope(session_factory) as db:
            return ContactRead.model_validate(crud.create_contact(db, ContactCreate(**values)))
    return _make


@pytest.fixture
def scripted():
    """Build a console that answers prompts from a list."""
    return ScriptedConsole
