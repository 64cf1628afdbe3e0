"""tildegate -- HTTP gateway for an IRC bot."""
