"""
Client-side core of the Markd dashboard.

Holds the user's bookmarks as an authoritative collection plus an optimistic
overlay, keeps them in sync with the API's realtime stream, and exposes
view-models for the add form, the list, each item and the header.
"""
