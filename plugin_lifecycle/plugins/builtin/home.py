"""The home plugin: the core plugin every application starts with."""

from ..base import AppPlugin, PluginMetadata


class HomePlugin(AppPlugin):
    """Landing page of the application. Always active."""

    @property
    def metadata(self) -> PluginMetadata:
        return PluginMetadata(
            id="home",
            name="Home",
            icon="home",
            description="Application landing page",
        )
