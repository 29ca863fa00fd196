# gnmikit

Building blocks for programs that collect streaming telemetry over gNMI.
The package has no runtime dependencies and is made of small, independent
modules:

- `gnmikit.ctree` – a thread-safe tree keyed by path segments. `Tree` supports
  `add`, `get`, `get_leaf`, `get_leaf_value`, glob queries with `"*"`
  (`query`), unordered and sorted walks (`walk`, `walk_sorted`) and deletion
  (`delete`, `delete_conditional`, `walk_deleted`). Adding a value where a
  leaf or branch is in the way raises `TreeError`. `Leaf` handles always
  return the latest value stored; `detached_leaf` makes one outside any tree.
- `gnmikit.path` – `Path` and `PathElem` describe gNMI paths; `to_strings`
  flattens a path into index strings (key values in key order) and
  `complete_path` joins a prefix and a path while checking the origin rules,
  raising `ValueError` when they are broken.
- `gnmikit.latency` – `Latency` keeps avg/max/min latency statistics over
  sliding time windows and writes them to any object with a `set_int` method
  (`MetadataSink`). Durations and timestamps are integer nanoseconds.
  `parse_windows`, `parse_duration`, `format_duration` and
  `compact_duration_string` handle window sizes written as durations such as
  `"2s"` or `"5m"`; `path` and `metadata_name` name the exported statistics.
- `gnmikit.metadata` – `Metadata` holds per-target counters, flags and strings
  with reset rules (`ResetAction`); only registered names are accepted
  (`InvalidValueError`), and reading an unset value raises `UnsetValueError`.
  `path` returns the cache path of a metadata value, and
  `register_latency_metadata` / `register_server_name_metadata` add entries.
- `gnmikit.errlist` and `gnmikit.errdiff` – `ErrorList` collects errors
  (ignoring `None`) and `err()` returns one `MultiError` or `None`; `text`,
  `substring` and `check` describe how an error differs from the one a test
  expected, returning `""` on a match.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

A tree of values addressed by paths:

```python
from gnmikit.ctree import Tree

tree = Tree()
tree.add(["dev1", "interfaces", "eth0", "mtu"], 1500)
tree.add(["dev1", "interfaces", "eth1", "mtu"], 9000)

found = {}
tree.query(["dev1", "*", "*", "mtu"],
           lambda path, leaf, value: found.setdefault("/".join(path), value))
print(found)
print(tree.delete(["dev1", "interfaces", "eth0"]))
# [['dev1', 'interfaces', 'eth0', 'mtu']]
```

Flattening a gNMI path:

```python
from gnmikit.path import Path, PathElem, to_strings

p = Path(elem=[PathElem("interfaces"), PathElem("interface", {"name": "eth0"})],
         target="dev1")
print(to_strings(p, True))  # ['dev1', 'interfaces', 'interface', 'eth0']
```

Latency statistics written into target metadata:

```python
from gnmikit import latency, metadata

windows = latency.parse_windows(["2s", "1m"], latency.parse_duration("2s"))
metadata.register_latency_metadata(windows)
meta = metadata.Metadata()
lat = latency.Latency(windows)
# call lat.compute(timestamp_ns) for each update and
# lat.update_reset(meta) every two seconds.
```

Collecting errors:

```python
from gnmikit.errlist import ErrorList

errs = ErrorList()
errs.add(None, ValueError("bad name"), [KeyError("x")])
err = errs.err()
if err is not None:
    raise err
```

## What it does not do

gnmikit is a library of data structures and helpers only. It does not
connect to devices, open gNMI subscriptions or run a server, and it has no
command-line program. It also has no dispatcher that routes incoming updates
to subscribers by query; a caller that needs one builds it on top of
`Tree.query` or its own code.