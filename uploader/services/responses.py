"""Rendering of upload outcomes into HTTP responses."""

from robyn import Response, status_codes

from uploader.core.errors import UploadError
from uploader.models.core import UploadOutcome

TEXT_PLAIN = {"content-type": "text/plain; charset=utf-8"}


def render_text(status_code: int, text: str) -> Response:
    return Response(status_code=status_code, headers=dict(TEXT_PLAIN), description=text)


def render_error(error: UploadError) -> Response:
    return render_text(error.status_code, error.reason)


def render_outcome(outcome: UploadOutcome, public_root: str) -> Response:
    """Write exactly one response for the outcome of an upload.

    Redirects point at the last stored file; plain text bodies list every
    stored file, one URL per line, in upload order.
    """
    if not outcome.ok or not outcome.stored:
        return render_error(outcome.error or UploadError())

    urls = [stored.public_url(public_root) for stored in outcome.stored]
    if outcome.redirect:
        return Response(
            status_code=status_codes.HTTP_302_FOUND,
            headers={"location": urls[-1]},
            description="",
        )
    return render_text(status_codes.HTTP_200_OK, "\n".join(urls))
