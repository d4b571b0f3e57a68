"""
Starlette Application
=====================
Serves the explorer page and runs actions submitted from it.

Run with:
    uvicorn postcodes_explorer.web:app --reload
"""

import contextlib
import logging
import os

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse
from starlette.routing import Route

from postcodes_explorer.actions import ACTIONS, run_action
from postcodes_explorer.clients.postcodes import PostcodesClient
from postcodes_explorer.page import FIELDS, render_page
from postcodes_explorer.results import ResultsArea

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: Starlette):
    app.state.postcodes = PostcodesClient()
    try:
        yield
    finally:
        await app.state.postcodes.close()


async def index(request: Request) -> HTMLResponse:
    """Empty page with no results."""
    return HTMLResponse(render_page())


async def submit(request: Request) -> HTMLResponse:
    """Run the action named by the pressed button and show its cards."""
    form = await request.form()
    values = {name: str(form.get(name, "")) for name in FIELDS}
    action = ACTIONS.get(str(form.get("action", "")))
    if action is None:
        logger.warning("Unknown action submitted: %r", form.get("action"))
        return HTMLResponse(render_page(values), status_code=400)

    # One results area per page render
    results = ResultsArea()
    await run_action(action, values, request.app.state.postcodes, results)
    return HTMLResponse(render_page(values, results))


app = Starlette(
    routes=[
        Route("/", index, methods=["GET"]),
        Route("/", submit, methods=["POST"]),
    ],
    lifespan=lifespan,
)


def run():
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host=os.environ.get("HOST", "127.0.0.1"), port=int(os.environ.get("PORT", "8000")))


# For running directly: python -m postcodes_explorer.web
if __name__ == "__main__":
    run()
