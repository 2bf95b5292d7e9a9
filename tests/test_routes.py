from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import (
    get_backend_client,
    get_current_session,
    get_omdb_client,
)
from app.main import app


@pytest.fixture
def client(backend, movies):
    app.dependency_overrides[get_backend_client] = lambda: backend
    app.dependency_overrides[get_omdb_client] = lambda: movies
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def logged_in(client, user_session):
    app.dependency_overrides[get_current_session] = lambda: user_session
    return client


HTMX = {"HX-Request": "true"}


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_api_search(client):
    response = client.get("/api/search?q=godfather")

    assert response.status_code == 200
    data = response.json()
    assert data[0]["imdbId"] == "tt0068646"
    assert data[0]["title"] == "The Godfather"


def test_api_unknown_movie_is_404(client):
    response = client.get("/api/movies/tt0000000")
    assert response.status_code == 404


def test_api_watchlist_lifecycle(logged_in, backend):
    created = logged_in.post(
        "/api/watchlists",
        json={"name": "Favorites", "description": "", "isPublic": False},
    )
    assert created.status_code == 201
    body = created.json()
    assert body["userId"] == "user-u"
    assert body["isPublic"] is False
    watchlist_id = body["id"]

    mine = logged_in.get("/api/watchlists").json()
    assert mine[0]["id"] == watchlist_id

    added = logged_in.put(f"/api/watchlists/{watchlist_id}/movies/tt0111161")
    assert added.json() == {"status": "added"}
    again = logged_in.put(f"/api/watchlists/{watchlist_id}/movies/tt0111161")
    assert again.json() == {"status": "duplicate"}

    containing = logged_in.get("/api/movies/tt0111161/watchlists").json()
    assert containing == [watchlist_id]

    movies = logged_in.get(f"/api/watchlists/{watchlist_id}/movies").json()
    assert [m["imdbId"] for m in movies] == ["tt0111161"]

    patched = logged_in.patch(
        f"/api/watchlists/{watchlist_id}", json={"description": "x"}
    ).json()
    assert patched["name"] == "Favorites"
    assert patched["description"] == "x"
    assert patched["isPublic"] is False

    assert logged_in.delete(f"/api/watchlists/{watchlist_id}").status_code == 204
    assert logged_in.get(f"/api/watchlists/{watchlist_id}").status_code == 404


def test_api_create_blank_name_is_400(logged_in, backend):
    response = logged_in.post("/api/watchlists", json={"name": "  "})

    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "invalid"
    assert backend.calls == []


def test_api_my_watchlists_requires_login(client):
    assert client.get("/api/watchlists").status_code == 401


def test_api_unknown_route_is_json(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}


def test_index_lists_public_watchlists(client, backend):
    backend.tables["watchlists"].append(
        {
            "id": "w1",
            "name": "Noir Classics",
            "description": "",
            "is_public": True,
            "user_id": "someone",
            "created_at": "2024-01-01T00:00:00+00:00",
        }
    )

    response = client.get("/")

    assert response.status_code == 200
    assert "Noir Classics" in response.text


def test_search_page_shows_results(client):
    response = client.get("/search", params={"query": "shawshank"})

    assert response.status_code == 200
    assert "The Shawshank Redemption" in response.text


def test_search_page_no_results_toast(client):
    response = client.get("/search", params={"query": "nothing-matches"})
    assert "No movies found for" in response.text


def test_movie_page_marks_lists_already_containing(logged_in, backend):
    backend.tables["watchlists"].append(
        {"id": "w1", "name": "Favorites", "is_public": False, "user_id": "user-u"}
    )
    backend.tables["watchlist_movies"].append(
        {"watchlist_id": "w1", "movie_id": "tt0111161"}
    )

    response = logged_in.get("/movie/tt0111161")

    assert response.status_code == 200
    assert "In list" in response.text


def test_create_watchlist_blank_name(logged_in, backend):
    response = logged_in.post("/create-watchlist", data={"name": " "}, headers=HTMX)

    assert response.status_code == 200
    assert "Please enter a name for your watchlist" in response.text
    assert backend.calls == []


def test_create_watchlist_redirects_to_detail(logged_in, backend):
    response = logged_in.post(
        "/create-watchlist",
        data={"name": "Favorites", "description": "", "is_public": "on"},
        headers=HTMX,
    )

    watchlist_id = backend.tables["watchlists"][0]["id"]
    assert response.headers["HX-Redirect"] == f"/watchlist/{watchlist_id}"
    assert backend.tables["watchlists"][0]["is_public"] is True


def test_add_duplicate_movie_shows_info(logged_in, backend):
    backend.tables["watchlists"].append(
        {"id": "w1", "name": "Favorites", "is_public": False, "user_id": "user-u"}
    )
    data = {"movie_id": "tt0111161", "title": "The Shawshank Redemption"}

    first = logged_in.post("/watchlist/w1/movies", data=data, headers=HTMX)
    second = logged_in.post("/watchlist/w1/movies", data=data, headers=HTMX)

    assert "toast-success" in first.text
    assert "The Shawshank Redemption" in first.text
    assert "already in the selected watchlist" in second.text
    assert "toast-error" not in second.text


def test_missing_watchlist_page(client):
    response = client.get("/watchlist/does-not-exist")

    assert response.status_code == 404
    assert "Watchlist Not Found" in response.text


def test_my_watchlists_redirects_anonymous(client):
    response = client.get("/my-watchlists", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/auth"


def test_unknown_page_renders_not_found(client):
    response = client.get("/definitely/not/here")

    assert response.status_code == 404
    assert "Page not found" in response.text


def test_login_sets_session_cookie(client, backend):
    backend.sign_in_with_password = AsyncMock(
        return_value={
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "user": {"id": "user-u", "email": "u@example.com"},
        }
    )

    response = client.post(
        "/auth/login",
        data={"email": "u@example.com", "password": "secret"},
        headers=HTMX,
    )

    assert response.headers["HX-Redirect"] == "/"
    assert response.cookies.get("reelshelf-access-token") == "access-1"


def test_login_failure_renders_toast(client, backend):
    from app.services.backend import BackendError

    backend.sign_in_with_password = AsyncMock(
        side_effect=BackendError("Invalid login credentials", status=400)
    )

    response = client.post(
        "/auth/login",
        data={"email": "u@example.com", "password": "wrong"},
        headers=HTMX,
    )

    assert response.status_code == 200
    assert "Invalid login credentials" in response.text
    assert "HX-Redirect" not in response.headers


def test_expired_cookie_is_refreshed_and_reissued(client, backend):
    from app.services.backend import BackendError

    backend.get_user = AsyncMock(side_effect=BackendError("JWT expired", status=401))
    backend.refresh_session = AsyncMock(
        return_value={
            "access_token": "access-2",
            "refresh_token": "refresh-2",
            "user": {"id": "user-u", "email": "u@example.com"},
        }
    )

    response = client.get(
        "/my-watchlists",
        headers={
            "Cookie": "reelshelf-access-token=expired; reelshelf-refresh-token=refresh-1"
        },
        follow_redirects=False,
    )

    assert response.status_code == 200
    assert response.cookies.get("reelshelf-access-token") == "access-2"
    assert response.cookies.get("reelshelf-refresh-token") == "refresh-2"
    backend.refresh_session.assert_awaited_once_with("refresh-1")


def test_valid_cookie_is_not_reissued(client, backend):
    backend.get_user = AsyncMock(return_value={"id": "user-u", "email": "u@example.com"})

    response = client.get(
        "/my-watchlists",
        headers={"Cookie": "reelshelf-access-token=token-u"},
        follow_redirects=False,
    )

    assert response.status_code == 200
    assert "reelshelf-access-token" not in response.cookies


def test_search_marks_movies_in_own_lists(logged_in, backend):
    backend.tables["watchlists"].extend(
        [
            {"id": "w1", "name": "Favorites", "is_public": False, "user_id": "user-u"},
            {"id": "w2", "name": "Theirs", "is_public": True, "user_id": "someone"},
        ]
    )
    backend.tables["watchlist_movies"].extend(
        [
            {"watchlist_id": "w1", "movie_id": "tt0111161"},
            {"watchlist_id": "w2", "movie_id": "tt0068646"},
        ]
    )

    response = logged_in.get("/search", params={"query": "the"})

    assert response.status_code == 200
    assert "The Shawshank Redemption" in response.text
    assert "The Godfather" in response.text
    assert response.text.count("In list") == 1


def test_search_anonymous_has_no_badges(client, backend):
    backend.tables["watchlist_movies"].append(
        {"watchlist_id": "w1", "movie_id": "tt0111161"}
    )

    response = client.get("/search", params={"query": "shawshank"})

    assert "In list" not in response.text
    assert backend.calls == []


def test_add_movie_swaps_picker_row_to_in_list(logged_in, backend):
    backend.tables["watchlists"].append(
        {"id": "w1", "name": "Favorites", "is_public": False, "user_id": "user-u"}
    )

    response = logged_in.post(
        "/watchlist/w1/movies",
        data={
            "movie_id": "tt0111161",
            "title": "The Shawshank Redemption",
            "watchlist_name": "Favorites",
        },
        headers=HTMX,
    )

    assert response.status_code == 200
    assert "Favorites" in response.text
    assert "In list" in response.text
    assert 'hx-post="/watchlist/w1/movies"' not in response.text
    assert 'hx-swap-oob="innerHTML"' in response.text


def test_failed_add_keeps_picker_form(logged_in, backend):
    from app.services.backend import BackendError

    backend.fail_with = BackendError("Network error: refused")

    response = logged_in.post(
        "/watchlist/w1/movies",
        data={"movie_id": "tt0111161", "title": "x", "watchlist_name": "Favorites"},
        headers=HTMX,
    )

    assert "In list" not in response.text
    assert 'hx-post="/watchlist/w1/movies"' in response.text
    assert "toast-error" in response.text
