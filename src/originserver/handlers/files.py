"""
=============================================================================
FILE HANDLERS
=============================================================================

Read and write files under a base directory, mounted on the ``/files/``
subtree. The router's subtree parameter is the path relative to the base:

    GET  /files/notes/today.txt   →  read  <base>/notes/today.txt
    POST /files/notes/today.txt   →  write <base>/notes/today.txt

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

The suffix comes straight from the request target, so it can try to climb
out of the base directory:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /files/../secrets HTTP/1.1                                     │
    │                                                                      │
    │  base "assets" + suffix "../secrets"                                │
    │     join       → "assets/../secrets"                                │
    │     normalise  → "secrets"                                          │
    │     inside "assets"?  NO  → 400 Bad Request                         │
    │                                                                      │
    │  base "/assets" + suffix "/secrets"                                 │
    │     join       → "/secrets"    (absolute suffix replaces the base)  │
    │     inside "/assets"?  NO  → 400 Bad Request                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The check is lexical and component-wise: "/assets-old" is NOT inside
"/assets". A leading "./" on the base is ignored, so "./assets" and
"assets" anchor the same tree.

=============================================================================
ATOMIC WRITES
=============================================================================

Concurrent POSTs to the same path must never leave a file holding a mix of
two bodies. Each write goes to a private temporary file in the target's
directory and is then renamed over the target:

    writer A ──► tmpA ──┐
                        ├──► os.replace() ──► target = all of A or all of B
    writer B ──► tmpB ──┘

os.replace() is atomic on POSIX when source and destination share a
filesystem, which is why the temporary file lives next to the target.
The last rename wins.

=============================================================================
"""

import logging
import os
import tempfile

from ..http.request import HTTPRequest
from ..http.response import ResponseBuilder
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"
FILE_MODE = 0o644


class InvalidPathError(ValueError):
    """The requested path escapes the base directory."""

    def __init__(self, base: str, suffix: str):
        super().__init__(f"{suffix!r} escapes base directory {base!r}")
        self.base = base
        self.suffix = suffix


def _strip_dot_slash(path: str) -> str:
    while path.startswith("./"):
        path = path[2:]
    return path or "."


def build_path(base: str, suffix: str) -> str:
    """
    Join ``suffix`` onto ``base`` and refuse anything that lands outside.

    Examples:
        build_path("assets", "foo/bar")      → "assets/foo/bar"
        build_path("./assets", "./foo/bar")  → "assets/foo/bar"
        build_path("/", "foo/bar")           → "/foo/bar"
        build_path("assets", "../secrets")   → InvalidPathError
        build_path("/assets", "/secrets")    → InvalidPathError

    Raises:
        InvalidPathError: the normalised path is not under the base.
    """
    path = os.path.normpath(os.path.join(base, suffix))
    anchor = os.path.normpath(_strip_dot_slash(base))

    if anchor == ".":
        inside = not os.path.isabs(path) and path != ".." and not path.startswith("../")
    else:
        inside = path == anchor or path.startswith(anchor.rstrip("/") + "/")

    if not inside:
        raise InvalidPathError(base, suffix)
    return path


class FileRetriever:
    """
    GET handler: send the file as application/octet-stream.

        invalid path ........ 400
        missing file ........ 404
        other OS error ...... 500
        success ............. 200
    """

    def __init__(self, base: str):
        self.base = base

    def __call__(self, response: ResponseBuilder, request: HTTPRequest) -> None:
        if request.param is None:
            response.set_status(HTTPStatus.BAD_REQUEST)
            return

        try:
            path = build_path(self.base, request.param)
        except InvalidPathError as e:
            logger.warning(f"Path traversal attempt: {e}")
            response.set_status(HTTPStatus.BAD_REQUEST)
            return

        logger.debug(f"Resolved {request.param!r} to {path}")
        try:
            with open(path, "rb") as f:
                content = f.read()
        except FileNotFoundError:
            response.set_status(HTTPStatus.NOT_FOUND)
            return
        except OSError as e:
            logger.error(f"Error reading file {path}: {e}")
            response.set_status(HTTPStatus.INTERNAL_SERVER_ERROR)
            return

        response.set_status(HTTPStatus.OK).set_body(content, OCTET_STREAM)


class FileWriter:
    """
    POST handler: store the request body, replacing any existing file.

    Parent directories are created on demand.

        invalid path / no body ... 400
        OS error ................. 500
        success .................. 201
    """

    def __init__(self, base: str):
        self.base = base

    def __call__(self, response: ResponseBuilder, request: HTTPRequest) -> None:
        if request.param is None or request.body is None:
            response.set_status(HTTPStatus.BAD_REQUEST)
            return

        try:
            path = build_path(self.base, request.param)
        except InvalidPathError as e:
            logger.warning(f"Path traversal attempt: {e}")
            response.set_status(HTTPStatus.BAD_REQUEST)
            return

        try:
            write_atomic(path, request.body)
        except OSError as e:
            logger.error(f"Error writing file {path}: {e}")
            response.set_status(HTTPStatus.INTERNAL_SERVER_ERROR)
            return

        logger.debug(f"Wrote {len(request.body)} bytes to {path}")
        response.set_status(HTTPStatus.CREATED)


def write_atomic(path: str, data: bytes) -> None:
    """
    Replace ``path`` with ``data`` in one step.

    Raises:
        OSError: directory creation, writing or renaming failed. The
                 temporary file is removed before the error propagates.
    """
    parent = os.path.dirname(path) or "."
    os.makedirs(parent, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=parent, prefix=".upload-")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp_path, FILE_MODE)
        os.replace(tmp_path, path)
    except OSError:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. build_path(): lexical normalise, then a component-wise prefix check
# 2. FileRetriever: 200 octet-stream, 404 missing, 500 other errors
# 3. FileWriter: temp file + os.replace(), 201 on success
# 4. Traversal attempts are logged and answered with 400
# =============================================================================
