# where: wordpress/main.py
# what: Entry point that registers the WordPress post, media, and custom post type tools with Dify.
# why: Dify launches this module and routes tool invocations through the plugin runtime.

from dify_plugin import DifyPluginEnv, Plugin

# メディアのアップロードは時間がかかるため、リクエストのタイムアウトを長めに取る
plugin = Plugin(DifyPluginEnv(MAX_REQUEST_TIMEOUT=300))

if __name__ == '__main__':
    plugin.run()
