"""UI routes returning HTML via Jinja2 templates."""

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import TypeAdapter, ValidationError
from starlette.responses import Response

from app.api.dependencies import (
    get_current_session,
    get_identity_provider,
    get_notifier,
    get_omdb_client,
    get_profile_service,
    get_watchlist_service,
)
from app.core.auth import clear_session_cookies, set_session_cookies
from app.models.auth import AuthSession
from app.models.results import ResultKind
from app.models.watchlist import WatchlistUpdate
from app.services.identity import IdentityError, IdentityProvider
from app.services.notifications import Notifier, Toast
from app.services.omdb import OMDbClient
from app.services.profiles import ProfileService
from app.services.watchlists import WatchlistService

router = APIRouter()
logger = logging.getLogger(__name__)

# Templates directory
BASE_DIR = Path(__file__).resolve().parent.parent
templates = Jinja2Templates(directory=BASE_DIR / "templates")

# Toasts that must survive a redirect travel in this cookie
FLASH_COOKIE = "reelshelf-flash"
_toast_list = TypeAdapter(List[Toast])


def _pop_flash(request: Request) -> List[Toast]:
    raw = request.cookies.get(FLASH_COOKIE)
    if not raw:
        return []
    try:
        return _toast_list.validate_json(raw)
    except ValidationError:
        logger.warning("Discarding malformed flash cookie")
        return []


def render_page(
    request: Request,
    name: str,
    notifier: Notifier,
    session: Optional[AuthSession] = None,
    status_code: int = 200,
    **context,
) -> Response:
    """Render a full page including any pending toasts."""
    toasts = _pop_flash(request) + notifier.toasts
    response = templates.TemplateResponse(
        request=request,
        name=name,
        context={"session": session, "toasts": toasts, **context},
        status_code=status_code,
    )
    if FLASH_COOKIE in request.cookies:
        response.delete_cookie(FLASH_COOKIE)
    return response


def _toasts(request: Request, notifier: Notifier) -> Response:
    """Return the toast partial for an HTMX form post."""
    return templates.TemplateResponse(
        request=request,
        name="partials/toasts.html",
        context={"toasts": notifier.toasts},
    )


def _redirect(request: Request, url: str, notifier: Notifier) -> Response:
    """Redirect after a successful form post, carrying toasts along."""
    if request.headers.get("HX-Request"):
        response = Response(status_code=200, headers={"HX-Redirect": url})
    else:
        response = RedirectResponse(url, status_code=303)
    if notifier.toasts:
        response.set_cookie(
            FLASH_COOKIE, _toast_list.dump_json(notifier.toasts).decode("utf-8")
        )
    return response


@router.get("/")
async def index(
    request: Request,
    service: WatchlistService = Depends(get_watchlist_service),
    notifier: Notifier = Depends(get_notifier),
):
    """Render the home page: search form and public watchlists."""
    public = await service.list_public()
    return render_page(
        request,
        "index.html",
        notifier,
        service.session,
        public_watchlists=public.value or [],
        page_title="Discover Movies",
    )


@router.get("/search")
async def search(
    request: Request,
    query: str = "",
    omdb: OMDbClient = Depends(get_omdb_client),
    service: WatchlistService = Depends(get_watchlist_service),
    notifier: Notifier = Depends(get_notifier),
):
    """Render search results for ``query``.

    Signed-in users also see which results already sit in one of their lists.
    """
    query = query.strip()
    results = []
    membership: Dict[str, List[str]] = {}
    if query:
        results = await omdb.search_movies(query)
        if not results:
            notifier.info(f'No movies found for "{query}"')
        elif service.session is not None:
            membership = await _membership(service, [m.imdb_id for m in results])

    return render_page(
        request,
        "search.html",
        notifier,
        service.session,
        query=query,
        results=results,
        membership=membership,
        page_title=f'Results for "{query}"' if query else "Search",
    )


async def _membership(
    service: WatchlistService, imdb_ids: List[str]
) -> Dict[str, List[str]]:
    """Map each movie to the ids of the user's own lists that contain it."""
    mine = (await service.list_mine()).value or []
    own_ids = {w.id for w in mine}
    if not own_ids:
        return {}
    lookups = await asyncio.gather(
        *(service.list_watchlists_containing(imdb_id) for imdb_id in imdb_ids)
    )
    return {
        imdb_id: [wid for wid in (result.value or []) if wid in own_ids]
        for imdb_id, result in zip(imdb_ids, lookups)
    }


@router.get("/movie/{imdb_id}")
async def movie_detail(
    request: Request,
    imdb_id: str,
    omdb: OMDbClient = Depends(get_omdb_client),
    service: WatchlistService = Depends(get_watchlist_service),
    notifier: Notifier = Depends(get_notifier),
):
    """Render a movie with "already in list" indicators for the user's lists."""
    movie = await omdb.get_movie_details(imdb_id)
    if movie is None:
        notifier.error("Failed to load movie details")
        return render_page(
            request, "not_found.html", notifier, service.session, status_code=404
        )

    my_watchlists = []
    containing: List[str] = []
    if service.session is not None:
        my_watchlists = (await service.list_mine()).value or []
        containing = (await service.list_watchlists_containing(imdb_id)).value or []

    return render_page(
        request,
        "movie_detail.html",
        notifier,
        service.session,
        movie=movie,
        my_watchlists=my_watchlists,
        containing=containing,
        page_title=movie.title,
    )


# --- Auth ---


@router.get("/auth")
async def auth_page(
    request: Request,
    notifier: Notifier = Depends(get_notifier),
    session: Optional[AuthSession] = Depends(get_current_session),
):
    if session is not None:
        return RedirectResponse("/", status_code=303)
    return render_page(request, "auth.html", notifier, page_title="Login")


@router.post("/auth/login")
async def login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    identity: IdentityProvider = Depends(get_identity_provider),
    notifier: Notifier = Depends(get_notifier),
):
    try:
        session = await identity.sign_in(email, password)
    except IdentityError:
        # Already toasted by the provider
        return _toasts(request, notifier)

    response = _redirect(request, "/", notifier)
    set_session_cookies(response, session)
    return response


@router.post("/auth/signup")
async def signup(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    username: str = Form(""),
    identity: IdentityProvider = Depends(get_identity_provider),
    notifier: Notifier = Depends(get_notifier),
):
    try:
        session = await identity.sign_up(email, password, username)
    except IdentityError:
        return _toasts(request, notifier)

    if session is None:
        return _toasts(request, notifier)
    response = _redirect(request, "/", notifier)
    set_session_cookies(response, session)
    return response


@router.post("/auth/logout")
async def logout(
    request: Request,
    identity: IdentityProvider = Depends(get_identity_provider),
    notifier: Notifier = Depends(get_notifier),
    session: Optional[AuthSession] = Depends(get_current_session),
):
    await identity.sign_out(session)
    response = _redirect(request, "/", notifier)
    clear_session_cookies(response)
    return response


# --- Watchlists ---


@router.get("/my-watchlists")
async def my_watchlists(
    request: Request,
    service: WatchlistService = Depends(get_watchlist_service),
    notifier: Notifier = Depends(get_notifier),
):
    if service.session is None:
        return RedirectResponse("/auth", status_code=303)

    watchlists = await service.list_mine()
    return render_page(
        request,
        "my_watchlists.html",
        notifier,
        service.session,
        watchlists=watchlists.value or [],
        page_title="My Watchlists",
    )


@router.get("/create-watchlist")
async def create_watchlist_page(
    request: Request,
    notifier: Notifier = Depends(get_notifier),
    session: Optional[AuthSession] = Depends(get_current_session),
):
    if session is None:
        return RedirectResponse("/auth", status_code=303)
    return render_page(
        request, "create_watchlist.html", notifier, session, page_title="New Watchlist"
    )


@router.post("/create-watchlist")
async def create_watchlist(
    request: Request,
    name: str = Form(""),
    description: str = Form(""),
    is_public: Optional[str] = Form(None),
    service: WatchlistService = Depends(get_watchlist_service),
    notifier: Notifier = Depends(get_notifier),
):
    result = await service.create(name, description, is_public is not None)
    if not result.ok:
        return _toasts(request, notifier)

    notifier.success("Watchlist created successfully!")
    return _redirect(request, f"/watchlist/{result.value.id}", notifier)


@router.get("/watchlist/{watchlist_id}")
async def watchlist_detail(
    request: Request,
    watchlist_id: str,
    service: WatchlistService = Depends(get_watchlist_service),
    notifier: Notifier = Depends(get_notifier),
):
    found = await service.get_by_id(watchlist_id)
    if not found.ok:
        if found.kind is ResultKind.NOT_FOUND:
            notifier.error("Watchlist not found")
        else:
            notifier.error("Failed to load watchlist")
        return render_page(
            request,
            "watchlist_missing.html",
            notifier,
            service.session,
            status_code=404,
            page_title="Watchlist Not Found",
        )

    watchlist = found.value
    is_owner = (
        service.session is not None and service.session.user_id == watchlist.user_id
    )
    movies = await service.list_movies(watchlist_id)
    return render_page(
        request,
        "watchlist_detail.html",
        notifier,
        service.session,
        watchlist=watchlist,
        movies=movies.value or [],
        is_owner=is_owner,
        page_title=watchlist.name,
    )


@router.get("/watchlist/{watchlist_id}/edit")
async def edit_watchlist_page(
    request: Request,
    watchlist_id: str,
    service: WatchlistService = Depends(get_watchlist_service),
    notifier: Notifier = Depends(get_notifier),
):
    if service.session is None:
        return RedirectResponse("/auth", status_code=303)

    found = await service.get_by_id(watchlist_id)
    if not found.ok or found.value.user_id != service.session.user_id:
        notifier.error("Watchlist not found")
        return render_page(
            request,
            "watchlist_missing.html",
            notifier,
            service.session,
            status_code=404,
            page_title="Watchlist Not Found",
        )
    return render_page(
        request,
        "edit_watchlist.html",
        notifier,
        service.session,
        watchlist=found.value,
        page_title=f"Edit {found.value.name}",
    )


@router.post("/watchlist/{watchlist_id}/edit")
async def edit_watchlist(
    request: Request,
    watchlist_id: str,
    name: str = Form(""),
    description: str = Form(""),
    is_public: Optional[str] = Form(None),
    service: WatchlistService = Depends(get_watchlist_service),
    notifier: Notifier = Depends(get_notifier),
):
    update = WatchlistUpdate(
        name=name, description=description.strip(), is_public=is_public is not None
    )
    result = await service.update(watchlist_id, update)
    if not result.ok:
        return _toasts(request, notifier)

    notifier.success("Watchlist updated")
    return _redirect(request, f"/watchlist/{watchlist_id}", notifier)


@router.post("/watchlist/{watchlist_id}/delete")
async def delete_watchlist(
    request: Request,
    watchlist_id: str,
    service: WatchlistService = Depends(get_watchlist_service),
    notifier: Notifier = Depends(get_notifier),
):
    result = await service.delete(watchlist_id)
    if not result.ok:
        return _toasts(request, notifier)

    notifier.success("Watchlist deleted successfully")
    return _redirect(request, "/my-watchlists", notifier)


@router.post("/watchlist/{watchlist_id}/movies")
async def add_movie(
    request: Request,
    watchlist_id: str,
    movie_id: str = Form(...),
    title: str = Form(""),
    watchlist_name: str = Form(""),
    service: WatchlistService = Depends(get_watchlist_service),
    notifier: Notifier = Depends(get_notifier),
):
    """Add a movie from the movie page.

    Returns the replacement picker row (marked "In list" once the movie is
    there) with the toasts swapped out-of-band.
    """
    result = await service.add_movie(watchlist_id, movie_id)
    if result.ok:
        notifier.success(f'Added "{title or movie_id}" to watchlist')
    elif result.kind is ResultKind.DUPLICATE:
        notifier.info("This movie is already in the selected watchlist")
    return templates.TemplateResponse(
        request=request,
        name="partials/picker_row.html",
        context={
            "watchlist": {"id": watchlist_id, "name": watchlist_name},
            "movie": {"imdb_id": movie_id, "title": title},
            "in_list": result.ok or result.kind is ResultKind.DUPLICATE,
            "oob_toasts": notifier.toasts,
        },
    )


@router.post("/watchlist/{watchlist_id}/movies/{movie_id}/remove")
async def remove_movie(
    request: Request,
    watchlist_id: str,
    movie_id: str,
    service: WatchlistService = Depends(get_watchlist_service),
    notifier: Notifier = Depends(get_notifier),
):
    result = await service.remove_movie(watchlist_id, movie_id)
    if not result.ok:
        return _toasts(request, notifier)

    notifier.success("Movie removed from watchlist")
    return _redirect(request, f"/watchlist/{watchlist_id}", notifier)


# --- Account ---


@router.get("/my-account")
async def my_account(
    request: Request,
    profiles: ProfileService = Depends(get_profile_service),
    notifier: Notifier = Depends(get_notifier),
):
    if profiles.session is None:
        return RedirectResponse("/auth", status_code=303)

    profile = await profiles.get_profile()
    return render_page(
        request,
        "my_account.html",
        notifier,
        profiles.session,
        profile=profile,
        page_title="My Account",
    )


@router.post("/my-account")
async def update_account(
    request: Request,
    username: str = Form(""),
    profiles: ProfileService = Depends(get_profile_service),
    notifier: Notifier = Depends(get_notifier),
):
    await profiles.update_username(username)
    return _toasts(request, notifier)
