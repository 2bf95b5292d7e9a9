"""API routes returning JSON for HTMX or external tools."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from app.api.dependencies import get_omdb_client, get_watchlist_service
from app.models.media import Movie
from app.models.results import Result, ResultKind
from app.models.watchlist import NewWatchlist, Watchlist, WatchlistUpdate
from app.services.omdb import OMDbClient
from app.services.watchlists import WatchlistService

router = APIRouter()

STATUS_FOR_KIND = {
    ResultKind.INVALID: 400,
    ResultKind.UNAUTHENTICATED: 401,
    ResultKind.NOT_FOUND: 404,
    ResultKind.REMOTE_ERROR: 502,
}


def _unwrap(result: Result):
    """Return the result's value or raise the matching HTTP error."""
    if result.ok:
        return result.value
    raise HTTPException(
        status_code=STATUS_FOR_KIND.get(result.kind, 500),
        detail={"kind": result.kind.value, "message": result.message},
    )


@router.get("/search", response_model=List[Movie])
async def api_search(
    q: str = Query(..., min_length=1, description="Search query"),
    omdb: OMDbClient = Depends(get_omdb_client),
):
    """Search OMDb for movies.

    An empty list means either no matches or a failed lookup.
    """
    if not q.strip():
        return []
    return await omdb.search_movies(q.strip())


@router.get("/movies/{imdb_id}", response_model=Movie)
async def api_movie(imdb_id: str, omdb: OMDbClient = Depends(get_omdb_client)):
    movie = await omdb.get_movie_details(imdb_id)
    if movie is None:
        raise HTTPException(status_code=404, detail="Movie not found")
    return movie


@router.get("/movies/{imdb_id}/watchlists", response_model=List[str])
async def api_movie_watchlists(
    imdb_id: str, service: WatchlistService = Depends(get_watchlist_service)
):
    """IDs of the watchlists that already contain this movie."""
    return _unwrap(await service.list_watchlists_containing(imdb_id))


@router.get("/watchlists", response_model=List[Watchlist])
async def api_my_watchlists(service: WatchlistService = Depends(get_watchlist_service)):
    if service.session is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return _unwrap(await service.list_mine())


@router.get("/watchlists/public", response_model=List[Watchlist])
async def api_public_watchlists(
    service: WatchlistService = Depends(get_watchlist_service),
):
    return _unwrap(await service.list_public())


@router.post("/watchlists", response_model=Watchlist, status_code=201)
async def api_create_watchlist(
    body: NewWatchlist, service: WatchlistService = Depends(get_watchlist_service)
):
    return _unwrap(await service.create(body.name, body.description, body.is_public))


@router.get("/watchlists/{watchlist_id}", response_model=Watchlist)
async def api_get_watchlist(
    watchlist_id: str, service: WatchlistService = Depends(get_watchlist_service)
):
    return _unwrap(await service.get_by_id(watchlist_id))


@router.patch("/watchlists/{watchlist_id}", response_model=Watchlist)
async def api_update_watchlist(
    watchlist_id: str,
    body: WatchlistUpdate,
    service: WatchlistService = Depends(get_watchlist_service),
):
    return _unwrap(await service.update(watchlist_id, body))


@router.delete("/watchlists/{watchlist_id}", status_code=204)
async def api_delete_watchlist(
    watchlist_id: str, service: WatchlistService = Depends(get_watchlist_service)
):
    _unwrap(await service.delete(watchlist_id))
    return Response(status_code=204)


@router.get("/watchlists/{watchlist_id}/movies", response_model=List[Movie])
async def api_watchlist_movies(
    watchlist_id: str, service: WatchlistService = Depends(get_watchlist_service)
):
    return _unwrap(await service.list_movies(watchlist_id))


@router.put("/watchlists/{watchlist_id}/movies/{imdb_id}")
async def api_add_movie(
    watchlist_id: str,
    imdb_id: str,
    service: WatchlistService = Depends(get_watchlist_service),
):
    """Add a movie; adding one that is already present reports ``duplicate``."""
    result = await service.add_movie(watchlist_id, imdb_id)
    if result.kind is ResultKind.DUPLICATE:
        return {"status": "duplicate"}
    _unwrap(result)
    return {"status": "added"}


@router.delete("/watchlists/{watchlist_id}/movies/{imdb_id}", status_code=204)
async def api_remove_movie(
    watchlist_id: str,
    imdb_id: str,
    service: WatchlistService = Depends(get_watchlist_service),
):
    _unwrap(await service.remove_movie(watchlist_id, imdb_id))
    return Response(status_code=204)


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "service": "reelshelf"}
