"""Infrastructure adapters: model providers, document extractors, stores."""
