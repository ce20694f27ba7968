"""
NanoFlows - Test Configuration and Fixtures
"""
import os
import tempfile
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment (before anything reads settings)
_TMP_DIR = tempfile.mkdtemp(prefix="nanoflows-tests-")
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'test'
os.environ['DATABASE_URL'] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['UPLOAD_PATH'] = os.path.join(_TMP_DIR, 'uploads')
os.environ['LOG_FILE'] = os.path.join(_TMP_DIR, 'logs', 'test.log')
os.environ['RAZORPAY_KEY_ID'] = ''
os.environ['RAZORPAY_KEY_SECRET'] = ''
os.environ['SMTP_USER'] = ''
os.environ['SMTP_PASSWORD'] = ''
os.environ['DB_RETRY_BASE_DELAY'] = '0'

from nanoflows.main import app
from nanoflows.core.database import Base, get_db, has_pending_writes
from nanoflows.core.security import get_password_hash, create_user_token
from nanoflows.models import User, UserRole, Course, Module, Lesson, Product, ProductCategory

fake = Faker()

TEST_DATABASE_URL = os.environ['DATABASE_URL']
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Test client; every request gets its own session like in production"""
    async def override_get_db():
        async with TestSessionLocal() as session:
            try:
                yield session
                if has_pending_writes(session):
                    await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(db_session: AsyncSession, password: str, role: UserRole, **overrides) -> User:
    user = User(
        email=overrides.pop('email', fake.unique.email().lower()),
        hashed_password=get_password_hash(password),
        name=overrides.pop('name', fake.name()),
        role=role,
        is_active=overrides.pop('is_active', True),
        **overrides
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user"""
    return await _create_user(db_session, 'testpassword123', UserRole.USER)


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, 'otherpassword123', UserRole.USER)


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin test user"""
    return await _create_user(db_session, 'adminpassword123', UserRole.ADMIN)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Generate authentication headers for test user"""
    return {'Authorization': f'Bearer {create_user_token(test_user)}'}


@pytest.fixture
def other_auth_headers(other_user: User) -> dict:
    return {'Authorization': f'Bearer {create_user_token(other_user)}'}


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    """Generate authentication headers for admin user"""
    return {'Authorization': f'Bearer {create_user_token(admin_user)}'}


@pytest.fixture
async def course_tree(db_session: AsyncSession, admin_user: User) -> dict:
    """A published paid course with one module and two video lessons"""
    course = Course(
        title='FastAPI from Scratch',
        description=fake.paragraph(),
        category='backend',
        price=499.0,
        free=False,
        instructor_name='Ada Lovelace',
        created_by=admin_user.id,
    )
    db_session.add(course)
    await db_session.flush()

    module = Module(course_id=course.id, title='Getting started', order_index=0)
    db_session.add(module)
    await db_session.flush()

    lessons = [
        Lesson(module_id=module.id, course_id=course.id, title=f'Lesson {i + 1}', order_index=i)
        for i in range(2)
    ]
    db_session.add_all(lessons)
    await db_session.commit()

    return {'course': course, 'module': module, 'lessons': lessons}


@pytest.fixture
async def free_course(db_session: AsyncSession, admin_user: User) -> Course:
    course = Course(
        title='Python Basics',
        description=fake.paragraph(),
        category='programming',
        price=0.0,
        free=True,
        created_by=admin_user.id,
    )
    db_session.add(course)
    await db_session.commit()
    return course


@pytest.fixture
async def product(db_session: AsyncSession) -> Product:
    item = Product(
        name='Mechanical Keyboard',
        slug='mechanical-keyboard',
        description='Hot-swappable 75% keyboard',
        price=60.0,
        category=ProductCategory.ELECTRONICS,
        stock=5,
        featured=True,
    )
    db_session.add(item)
    await db_session.commit()
    return item
