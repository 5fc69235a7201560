"""B2B marketplace backend: buy requests, offers and negotiation."""
