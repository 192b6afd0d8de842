# where: wordpress/tools/__init__.py
# what: WordPress REST API core (request builder, dispatcher) and the Dify tools built on it.
