from proske.config.settings import settings

__all__ = ["settings"]
