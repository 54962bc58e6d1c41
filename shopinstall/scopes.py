UNAUTHENTICATED_WRITE_PREFIX = "unauthenticated_write_"


UNAUTHENTICATED_READ_PREFIX = "unauthenticated_read_"


WRITE_PREFIX = "write_"


READ_PREFIX = "read_"


def parse_scopes(scope_str):
    """Convert the comma separated scope string from shopify into a set."""
    if not scope_str:
        return set()
    return {scope.strip() for scope in scope_str.split(",") if scope.strip()}


def with_implied_scopes(scopes):
    """Add the read scope that each granted write scope carries with it."""
    expanded = set(scopes)
    for scope in scopes:
        if scope.startswith(UNAUTHENTICATED_WRITE_PREFIX):
            expanded.add(
                UNAUTHENTICATED_READ_PREFIX
                + scope.removeprefix(UNAUTHENTICATED_WRITE_PREFIX)
            )
        elif scope.startswith(WRITE_PREFIX):
            expanded.add(READ_PREFIX + scope.removeprefix(WRITE_PREFIX))
    return expanded


def scopes_have_changed(granted_scopes, expected_scopes):
    # @NOTE: No re-install is needed while the expected scopes are still
    # covered by what the shop granted on install.
    return not with_implied_scopes(expected_scopes).issubset(
        with_implied_scopes(granted_scopes)
    )
