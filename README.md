# stonekit

A library for working with `.stone` package archives and the build
recipes that produce them.

- `stonekit.stone` reads and writes `.stone` containers: the fixed
  32-byte header (`header.Header`), zstd-compressed record payloads
  (meta, layout, index, attributes) and the content payload. XXH3
  checksums are verified on every read.
- `stonekit.recipe` parses YAML build recipes (`recipe.from_str`,
  `recipe.from_bytes`) and macro files (`macros.from_bytes`), expands
  `%action` and `%(definition)` macros in build scripts
  (`script.Parser`), and resolves compiler tuning groups into flag sets
  (`tuning.Builder`).
- `stonekit.vfs` builds a virtual filesystem tree from a list of files
  (`builder.TreeBuilder`), adding the directories they imply and moving
  entries found under a symlink to a directory beneath that directory.
- `stonekit.tui` holds small terminal helpers: `terminal.term_size`,
  `terminal.ask_yes_no`, and `pretty.print_to_columns` for printing
  sorted items in columns.

## Installing

```
pip install .
```

Python 3.10 or later is required. The package depends on `zstandard`
and `pyyaml`.

## Reading an archive

```python
from stonekit.stone.read import read, find_payload
from stonekit.stone.payload import PayloadKind

with open("package.stone", "rb") as fh:
    stone = read(fh)
    payloads = list(stone.payloads())

    meta = find_payload(payloads, PayloadKind.META)
    for record in meta.body:
        print(record.tag.name, record.value)

    content = find_payload(payloads, PayloadKind.CONTENT)
    with open("content.bin", "wb") as out:
        stone.unpack_content(content, out)
```

`read_bytes(data)` opens an archive held in memory. A checksum mismatch
raises `PayloadChecksumError`; a bad header raises a subclass of
`HeaderDecodeError`; malformed records raise a subclass of
`PayloadDecodeError`.

Each entry of the index payload (`payload.Index`) gives the `start` and
`end` of one file within the unpacked content and its 128-bit XXH3
`digest`, which matches the `hash` of a `layout.RegularEntry`.

## Writing an archive

```python
import io
from stonekit.stone.header import FileType
from stonekit.stone.meta import Meta, MetaKind, Tag
from stonekit.stone.write import Writer

out = io.BytesIO()
writer = Writer(out, FileType.BINARY).with_content(io.BytesIO(), None)
writer.add_payload([Meta(Tag.NAME, MetaKind.STRING, "example")])
writer.add_content(b"file contents")
writer.finalize()
```

`add_payload` takes a list of `Meta`, `Attribute` or `Layout` records,
all of one type. The index payload is produced for you from the content
added with `add_content`, which accepts bytes or a binary stream.

## Parsing recipes and expanding scripts

```python
from stonekit.recipe.macros import Action
from stonekit.recipe.script import Parser

parser = Parser()
parser.add_action("make", Action(command="make -j%(jobs)", dependencies=["make"]))
parser.add_definition("jobs", "4")
script = parser.parse("%make\n%break_continue\n%make install")
print(script.commands, script.dependencies)
```

`script.commands` is a list of `Content` and `Breakpoint` items;
`%break_continue` and `%break_exit` split the script at a breakpoint.
`%%` stands for a literal `%`. Unknown macros raise
`UnknownActionError` or `UnknownDefinitionError`.

`Parser.add_macros` and `tuning.Builder.add_macros` take the `Macros`
returned by `macros.from_bytes`. `Builder.enable(name, config)` and
`Builder.disable(name)` switch tuning groups, and `Builder.build()`
returns the selected `TuningFlag` objects; `TuningFlag.get(flag,
toolchain)` gives the flag text for a `CompilerFlag` and `Toolchain`.

## Building a filesystem tree

```python
from stonekit.vfs.builder import TreeBuilder
from stonekit.vfs.tree import BlitFile, Kind

builder = TreeBuilder()
builder.push(BlitFile("/usr/bin/nano", Kind.REGULAR, "nano"))
builder.push(BlitFile("/usr/bin/rnano", Kind.symlink("nano"), "nano"))
builder.bake()
tree = builder.tree()
for entry in tree:
    print(entry.path)
```

Subclass `BlitFile` to carry more detail and pass the subclass to
`TreeBuilder(file_type)`. A name clash under one directory is reported
on stderr and the later entry is skipped.

## What it does not do

- There is no command-line tool; everything is used as a library.
- Layout records for character devices, block devices, fifos and sockets
  can be written but not read back (`UnsupportedFileTypeError`).
- Archives are always written with zstd compression.
- XXH3 hashing is done in pure Python and keeps hashed data in memory,
  so very large archives are slow to read and write.

## Running the tests

```
pip install .[test]
pytest
```