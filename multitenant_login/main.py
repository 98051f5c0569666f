"""
Login redirector for a multi-tenant identity provider.
GET /login (optionally ?consent=y) and GET /consent: set the authstate cookie and 302 to {authority}/oauth2/authorize.
Port 8080 by default.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from multitenant_login.authorize import EncodingFailure, build_authorize_url, generate_state, wants_admin_consent
from multitenant_login.config import ConfigLoader, LoginConfig

logger = logging.getLogger(__name__)

STATE_COOKIE = "authstate"

_SERVER_ERROR_HTML = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Server error</title></head>
<body>
  <h1>Server error</h1>
  <p>The sign-in request could not be created. Please try again later.</p>
</body>
</html>"""


def get_login_config(request: Request) -> LoginConfig:
    """Configuration published at startup; 500 if the app never finished initializing."""
    config = getattr(request.app.state, "login_config", None)
    if config is None:
        raise HTTPException(status_code=500, detail="Login is not configured")
    return config


def _redirect_to_authority(config: LoginConfig, admin_consent: bool) -> HTMLResponse | RedirectResponse:
    state = generate_state() if config.random_state else config.state
    try:
        url = build_authorize_url(
            authority=config.authority,
            client_id=config.client_id,
            redirect_uri=config.redirect,
            state=state,
            resource=config.resource,
            admin_consent=admin_consent,
        )
        response = RedirectResponse(url=url, status_code=302)
        try:
            if config.secure_cookie:
                response.set_cookie(STATE_COOKIE, state, httponly=True, secure=True, samesite="lax")
            else:
                response.set_cookie(STATE_COOKIE, state)
        except UnicodeEncodeError as e:
            raise EncodingFailure(str(e)) from e
    except EncodingFailure:
        logger.exception("Could not encode authorization request")
        return HTMLResponse(_SERVER_ERROR_HTML, status_code=500)
    return response


def create_app(loader: ConfigLoader | None = None) -> FastAPI:
    loader = loader or ConfigLoader()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Load configuration before serving; a failed load aborts startup."""
        app.state.login_config = loader.load()
        yield

    app = FastAPI(title="Multitenant Login", version="1.0.0", lifespan=lifespan)
    app.state.config_loader = loader

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "multitenant_login"}

    @app.get("/login")
    def login(request: Request, config: LoginConfig = Depends(get_login_config)):
        """
        Start the authorization-code flow. consent=y (exactly) requests administrator consent.
        When consent is repeated, the first value decides.
        """
        values = request.query_params.getlist("consent")
        consent = values[0] if values else None
        return _redirect_to_authority(config, admin_consent=wants_admin_consent(consent))

    @app.get("/consent")
    def admin_consent_login(config: LoginConfig = Depends(get_login_config)):
        """Start the flow with administrator consent for the whole tenant."""
        return _redirect_to_authority(config, admin_consent=True)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "multitenant_login.main:app",
        host="127.0.0.1",
        port=8080,
    )
