#!/usr/bin/env python3
"""
Mock CAS Server
Serves the CAS login surface the browser scenarios exercise, for development
and test environments where a real CAS deployment isn't available.
"""

import argparse
import itertools
import logging
import secrets
from html import escape
from typing import Dict, Optional, Tuple
from urllib.parse import parse_qs

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from .settings import settings

logger = logging.getLogger(__name__)

TGC_COOKIE = "TGC"

app = FastAPI(title="Mock CAS Server", version="1.0.0")

# In-memory registries; a restart forgets every session
ticket_granting_tickets: Dict[str, str] = {}
service_tickets: Dict[str, Tuple[str, str]] = {}
_ticket_ids = itertools.count(1)

def users() -> Dict[str, str]:
    return {settings.CAS_USERNAME: settings.CAS_PASSWORD}

def issue_service_ticket(service: str, username: str) -> str:
    ticket = f"ST-{next(_ticket_ids)}-{secrets.token_urlsafe(20)}"
    service_tickets[ticket] = (service, username)
    return ticket

def service_redirect(service: str, ticket: str) -> str:
    return f"{service}{'&' if '?' in service else '?'}ticket={ticket}"

def login_page(service: Optional[str] = None, error: Optional[str] = None, status_code: int = 200) -> HTMLResponse:
    hidden = f'<input type="hidden" name="service" value="{escape(service)}">' if service else ""
    errors = f'<div id="loginErrorsPanel" class="alert alert-danger">{escape(error)}</div>' if error else ""
    body = f"""<!DOCTYPE html>
<html>
<head><title>CAS - Central Authentication Service Login</title></head>
<body>
  <h2>Log In</h2>
  {errors}
  <form id="fm1" method="post">
    <input id="username" name="username" type="text" autocomplete="off">
    <input id="password" name="password" type="password" autocomplete="off">
    {hidden}
    <button type="submit" name="submitBtn">LOGIN</button>
  </form>
</body>
</html>"""
    return HTMLResponse(body, status_code=status_code)

@app.get("/", response_class=HTMLResponse)
async def root():
    return "<html><head><title>Mock CAS Service</title></head><body>Mock CAS Service</body></html>"

@app.get("/cas/login")
async def login_form(request: Request, service: Optional[str] = None):
    tgt = request.cookies.get(TGC_COOKIE)
    if service and tgt in ticket_granting_tickets:
        ticket = issue_service_ticket(service, ticket_granting_tickets[tgt])
        logger.info(f"SSO session {tgt} granted {ticket} for {service}")
        return RedirectResponse(service_redirect(service, ticket), status_code=302)
    return login_page(service)

@app.post("/cas/login")
async def login_submit(request: Request):
    # urlencoded body parsed by hand to avoid requiring python-multipart
    body = (await request.body()).decode(errors="replace")
    form = {k: v[0] for k, v in parse_qs(body, keep_blank_values=True).items()}
    service = form.get("service") or request.query_params.get("service")
    username = form.get("username", "")

    expected = users().get(username)
    if expected is None or expected != form.get("password", ""):
        logger.info(f"Authentication failed for {username!r}")
        return login_page(service, error="Authentication attempt has failed.", status_code=401)

    tgt = f"TGT-{next(_ticket_ids)}-{secrets.token_urlsafe(20)}"
    ticket_granting_tickets[tgt] = username
    logger.info(f"Authenticated {username}, created {tgt}")

    if service:
        ticket = issue_service_ticket(service, username)
        response: Response = RedirectResponse(service_redirect(service, ticket), status_code=302)
    else:
        response = HTMLResponse(
            "<html><head><title>Log In Successful</title></head>"
            "<body><div id=\"content\">Log In Successful</div></body></html>"
        )
    response.set_cookie(TGC_COOKIE, tgt, httponly=True, path="/cas")
    return response

@app.get("/cas/serviceValidate")
async def service_validate(service: str = "", ticket: str = ""):
    entry = service_tickets.pop(ticket, None)
    if entry is None or entry[0] != service:
        code = "INVALID_TICKET" if entry is None else "INVALID_SERVICE"
        logger.info(f"Validation of {ticket!r} failed: {code}")
        body = (
            "<cas:serviceResponse xmlns:cas=\"http://www.yale.edu/tp/cas\">"
            f"<cas:authenticationFailure code=\"{code}\">Ticket {escape(ticket)} not recognized</cas:authenticationFailure>"
            "</cas:serviceResponse>"
        )
    else:
        body = (
            "<cas:serviceResponse xmlns:cas=\"http://www.yale.edu/tp/cas\">"
            f"<cas:authenticationSuccess><cas:user>{escape(entry[1])}</cas:user></cas:authenticationSuccess>"
            "</cas:serviceResponse>"
        )
    return Response(content=body, media_type="application/xml")

@app.get("/cas/logout", response_class=HTMLResponse)
async def logout(request: Request):
    tgt = request.cookies.get(TGC_COOKIE)
    if tgt and ticket_granting_tickets.pop(tgt, None) is not None:
        logger.info(f"Destroyed {tgt}")
    response = HTMLResponse("<html><head><title>Logout Successful</title></head><body>Logout successful</body></html>")
    response.delete_cookie(TGC_COOKIE, path="/cas")
    return response

def main() -> None:
    import uvicorn
    p = argparse.ArgumentParser(description="Mock CAS server")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8080)
    args = p.parse_args()

    logging.basicConfig(level=logging.INFO)
    logger.info(f"Starting Mock CAS Server; point CAS_BASE_URL at http://{args.host}:{args.port}/cas")
    uvicorn.run(app, host=args.host, port=args.port)

if __name__ == "__main__":
    main()
