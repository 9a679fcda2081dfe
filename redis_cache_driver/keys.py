KEY_SEPARATOR = ":"


def compose_key(resource_type: str, key: str) -> str:
    # The separator is not escaped, so "a:b" + "c" and "a" + "b:c" collide.
    return f"{resource_type}{KEY_SEPARATOR}{key}"
