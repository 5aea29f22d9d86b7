"""HTTP trigger blueprint — health check and directory listing endpoints."""

import json
import logging
from typing import Any

import azure.functions as func

from shopware_media import __version__
from shopware_media.config import load_config
from shopware_media.fs.errors import NotFoundError, RootIsFileError
from shopware_media.fs.filesystem import MediaObject, filesystem_from_config

logger = logging.getLogger(__name__)

bp = func.Blueprint()


def _json_response(payload: dict[str, Any], status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(payload), status_code=status_code, mimetype="application/json"
    )


@bp.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint.

    Returns service status and version.
    """
    logger.info("[health_check] health check requested")

    try:
        return _json_response({"status": "ok", "version": __version__})

    except Exception:
        logger.error("[health_check] health check failed", exc_info=True)
        return _json_response({"status": "error", "message": "Internal server error"}, 500)


@bp.route(route="list", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def list_directory(req: func.HttpRequest) -> func.HttpResponse:
    """List one directory of the media manager.

    Query parameter ``path`` selects the directory relative to the
    configured root (default: the root itself). Requires a function key.
    """
    path = req.params.get("path", "")
    logger.info("[list_directory] listing requested; path:%s", path)

    try:
        config = load_config()
        fs = filesystem_from_config(config)
        entries = fs.list(path)

        results = [
            {
                "name": entry.name,
                "remote": entry.remote,
                "type": "file" if isinstance(entry, MediaObject) else "directory",
                "size": entry.size if isinstance(entry, MediaObject) else 0,
                "mod_time": entry.mod_time.isoformat(),
            }
            for entry in entries
        ]
        logger.info("[list_directory] listing complete; path:%s;entry_count:%d", path, len(results))
        return _json_response({"status": "ok", "path": path, "entries": results})

    except NotFoundError as exc:
        logger.info("[list_directory] directory not found; path:%s", path)
        return _json_response({"status": "error", "message": str(exc)}, 404)

    except RootIsFileError as exc:
        logger.warning("[list_directory] configured root is a file; leaf:%s", exc.leaf)
        return _json_response({"status": "error", "message": str(exc)}, 409)

    except Exception:
        logger.error("[list_directory] listing failed", exc_info=True)
        return _json_response({"status": "error", "message": "Internal server error"}, 500)
