"""Application layer: channel resolution, dispatch, inbound handling and the relay facade."""
