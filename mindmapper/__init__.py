"""Mind Mapper - free-form mind map editing core."""

__version__ = "1.0.0"
__app_id__ = "io.github.mindmapper"
