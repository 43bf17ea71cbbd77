import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from petclinic import models, repositories
from petclinic.database import engine
from petclinic.main import DUPLICATE_USER_MESSAGE, app, get_users_repository


def test_duplicate_save_renders_error_view_with_500(client):
    r = client.get('/userexception')
    assert r.status_code == 500
    assert r.template.name == 'performance/performance.html'
    assert r.context['excp'] == "Duplicate entry 'Snappy' for key 'name'"
    assert r.context['excp'] == DUPLICATE_USER_MESSAGE
    # repeated requests keep failing the same way
    r2 = client.get('/userexception')
    assert r2.status_code == 500


def test_saves_that_succeed_render_view_without_error(client):
    saved = []

    class AcceptingRepository:
        def save(self, users):
            saved.append((users.name, users.age))
            return users

    app.dependency_overrides[get_users_repository] = lambda: AcceptingRepository()
    r = client.get('/userexception')
    assert r.status_code == 200
    assert r.template.name == 'performance/performance.html'
    assert 'excp' not in r.context
    assert saved == [('Snappy', 23), ('Snappy', 23)]


def test_any_save_error_is_reported_the_same_way(client):
    class BrokenRepository:
        def save(self, users):
            raise RuntimeError('connection reset')

    app.dependency_overrides[get_users_repository] = lambda: BrokenRepository()
    r = client.get('/userexception')
    assert r.status_code == 500
    assert r.context['excp'] == DUPLICATE_USER_MESSAGE


def test_users_repository_rejects_duplicate_name():
    with Session(engine) as session:
        repo = repositories.UsersRepository(session)
        first = repo.save(models.Users(name='Rex', age=3))
        assert first.id is not None
        with pytest.raises(IntegrityError):
            repo.save(models.Users(name='Rex', age=3))
        # session is usable again after the rollback
        stored = session.exec(select(models.Users).where(models.Users.name == 'Rex')).all()
        assert [u.id for u in stored] == [first.id]
