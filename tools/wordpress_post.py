# where: wordpress/tools/wordpress_post.py
# what: Implements create/get/update/delete for WordPress posts.
# why: Allow Dify workflows to manage posts through the WordPress REST API.

from __future__ import annotations

from . import base
from .dispatcher import ResourceKind


class WordPressPostTool(base.BaseWordPressTool):
    resource = ResourceKind.POST
