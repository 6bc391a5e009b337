import typing


def english_enumerate(items: typing.Iterable[str], conj: str = ", and ") -> str:
    buf = []

    i = iter(items)
    try:
        x = next(i)
    except StopIteration:
        return ""
    buf.append(x)

    lx: typing.Optional[str] = None

    for x in i:
        if lx is not None:
            buf.append(", ")
            buf.append(lx)
        lx = x
    if lx is not None:
        buf.append(conj)
        buf.append(lx)
    return "".join(buf)


def split_comma_list(value: typing.Union[str, typing.Iterable[typing.Any]]) -> typing.List[str]:
    """
    Splits a comma-delimited parameter value into its non-empty, stripped items.
    Sequences are flattened so that ``["a,b", "c"]`` yields ``["a", "b", "c"]``.
    """
    if isinstance(value, str):
        items: typing.Iterable[typing.Any] = value.split(",")
    else:
        items = (x for v in value for x in split_comma_list(v))
    return [str(item).strip() for item in items if str(item).strip()]
