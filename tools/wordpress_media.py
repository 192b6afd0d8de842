# where: wordpress/tools/wordpress_media.py
# what: Implements upload/get/update/delete for the WordPress media library.
# why: Allow Dify workflows to upload files and manage attachment metadata.

from __future__ import annotations

from . import base
from .dispatcher import ResourceKind


class WordPressMediaTool(base.BaseWordPressTool):
    """Media uploads read the file from the binary property named by ``binary_property``."""

    resource = ResourceKind.MEDIA
