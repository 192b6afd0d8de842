# where: wordpress/provider/__init__.py
# what: Credential provider for the WordPress plugin.
