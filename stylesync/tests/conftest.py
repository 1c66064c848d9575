import os
import sys
import pytest


def _ensure_project_root_on_sys_path() -> None:
    here = os.path.dirname(__file__)
    project_root = os.path.abspath(os.path.join(here, "..", ".."))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


_ensure_project_root_on_sys_path()


@pytest.fixture(autouse=True)
def _clear_credentials_env():
    """Ensure credentials and tunables do not leak into tests from the shell or a .env file."""
    keys = [
        'SPOTIFY_CLIENT_ID', 'SPOTIFY_CLIENT_SECRET', 'SPOTIFY_REDIRECT_URI',
        'SPOTIFY_ACCESS_TOKEN', 'DISCOGS_TOKEN', 'STYLESYNC_USER_AGENT',
        'STYLESYNC_PAGE_DELAY', 'STYLESYNC_RETRY_ATTEMPTS', 'STYLESYNC_RETRY_DELAY',
        'STYLESYNC_MIN_OWNERS',
    ]
    backup = {k: os.environ.get(k) for k in keys}
    for k in keys:
        os.environ.pop(k, None)
    try:
        yield
    finally:
        for k, v in backup.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v
