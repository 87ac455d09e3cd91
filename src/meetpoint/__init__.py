"""meetpoint: the meeting point of a group of cities."""
