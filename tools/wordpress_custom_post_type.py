# where: wordpress/tools/wordpress_custom_post_type.py
# what: Implements create/get/update/delete for custom post types addressed by slug.
# why: Allow Dify workflows to manage content types registered by themes and plugins.

from __future__ import annotations

from . import base
from .dispatcher import ResourceKind


class WordPressCustomPostTypeTool(base.BaseWordPressTool):
    resource = ResourceKind.CUSTOM_POST_TYPE
