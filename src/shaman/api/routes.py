"""API routes for managing DNS records."""

from fastapi import APIRouter, Depends, Request, Response

from shaman.api.models import normalize_domain
from shaman.api.responses import parse_body, write_body
from shaman.core.codec import decode_json, decode_resource, decode_resources, to_resource
from shaman.core.repository import ResourceRepository
from shaman.utils.decorators import sentry_exception_catcher
from shaman.utils.exceptions import InvalidResourceError

router = APIRouter(tags=["records"])


def get_repository(request: Request) -> ResourceRepository:
    """Return the record store attached to the running application."""
    return request.app.state.repository


def _path_domain(domain: str) -> str:
    try:
        return normalize_domain(domain)
    except ValueError as e:
        raise InvalidResourceError(str(e)) from e


@router.post("/records")
@sentry_exception_catcher
async def create_record(
    request: Request,
    repository: ResourceRepository = Depends(get_repository),
) -> Response:
    """Add a resource. An already registered domain is a conflict."""
    resource = decode_resource(await parse_body(request))
    stored = await repository.add(resource)

    return write_body(request, stored, 201)


@router.get("/records")
@sentry_exception_catcher
async def list_records(
    request: Request,
    full: bool = False,
    repository: ResourceRepository = Depends(get_repository),
) -> Response:
    """
    Return all resources.

    Without ``full`` each entry only carries its domain; answers are left out.
    """
    resources = await repository.list()

    if full:
        return write_body(request, resources, 200)

    return write_body(request, [r.summary() for r in resources], 200)


@router.put("/records")
@sentry_exception_catcher
async def update_answers(
    request: Request,
    repository: ResourceRepository = Depends(get_repository),
) -> Response:
    """Replace the whole record set; domains not in the body are removed."""
    resources = decode_resources(await parse_body(request))
    stored = await repository.replace_all(resources)

    return write_body(request, stored, 200)


@router.get("/records/{domain}")
@sentry_exception_catcher
async def get_record(
    request: Request,
    domain: str,
    repository: ResourceRepository = Depends(get_repository),
) -> Response:
    """Return one resource."""
    resource = await repository.get(_path_domain(domain))

    return write_body(request, resource, 200)


@router.put("/records/{domain}")
@sentry_exception_catcher
async def update_record(
    request: Request,
    domain: str,
    repository: ResourceRepository = Depends(get_repository),
) -> Response:
    """Replace one resource's answers. The path domain wins over the body's."""
    domain = _path_domain(domain)
    payload = decode_json(await parse_body(request))

    if not isinstance(payload, dict):
        raise InvalidResourceError("expected a JSON object")

    resource = to_resource({**payload, "domain": domain})
    stored = await repository.update(resource)

    return write_body(request, stored, 200)


@router.delete("/records/{domain}")
@sentry_exception_catcher
async def delete_record(
    request: Request,
    domain: str,
    repository: ResourceRepository = Depends(get_repository),
) -> Response:
    """Remove one resource. Deleting an unknown domain is not found."""
    await repository.delete(_path_domain(domain))

    return write_body(request, {"msg": "success"}, 200)
