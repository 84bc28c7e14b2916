from types import SimpleNamespace


def city(name: str, **kargs) -> SimpleNamespace:
    """A plain object standing in for a model instance"""
    return SimpleNamespace(name=name, **kargs)


def requested(client) -> list[tuple[str, str, list[str]]]:
    """The requests of a RecordingClient, with object names instead of objects"""
    result = []
    for kind, type_name, objects in client.requests:
        if kind == "single":
            objects = [objects]
        result.append((kind, type_name, [o.name for o in objects]))
    return result
