# fabriclog

`fabriclog` reads fabric diagnostic archives and pulls the nodes and ports
out of them. It stores the result in an SQLite database and serves it over a
small JSON HTTP API. It uses only the standard library.

## What it reads

An archive is a zip file that holds two kinds of file.

The first is a file whose name ends in `.db_csv`, compared without regard to
case. This file is required. It is split into sections. Each section opens
with a line `START_<NAME>` and closes with a line `END_<NAME>`. Blank lines
are skipped. Three sections are used, and each one starts with a header row.

- `NODES` (required). The CSV columns used are:
  - column 1: the node description
  - column 2: the number of ports
  - column 3: the node type. `1` is `NodeType.HOST` and `2` is
    `NodeType.SWITCH`. Any other number is kept as a plain integer.
  - column 7: the node GUID

  A row must have at least 7 fields. Columns 2 and 3 must be integers.
- `PORTS` (required). The CSV columns used are:
  - column 2: the port GUID
  - column 3: the port number, which must be an integer
  - column 7: the LID
  - column 21: the port state

  A row must have at least 21 fields. If the LID or the port state is not an
  integer, it is read as `0`.
- `SYSTEM_GENERAL_INFORMATIONS` (optional). The columns are the node GUID,
  the serial number, the part number, the revision and the product name. An
  empty value or `N/A` becomes `None`. A row is attached as `NodeInfo` to the
  node whose GUID is exactly the same.

The second is an optional file whose name contains `.sharp_an_info`. It holds
blocks of `key=value` lines that are separated by lines starting with `---`.
Each block names its switch with `SW_GUID=`. The integer keys `endianness`,
`enable_endianness_per_job` and `reproducibility_disable` are copied onto the
`NodeInfo` of the node whose GUID matches. The match ignores case and a
leading `0x` on the node GUID.

Any problem raises `fabriclog.parser.ParseError`. That covers:

- a file that is not a zip
- an archive with no `.db_csv` file
- a nodes or ports section with no data row
- a malformed row

## Using the parser

```python
from fabriclog.parser import parse_zip

parsed = parse_zip("diagnostics.zip")
for node in parsed.nodes:
    print(node.node_guid, node.node_desc, node.node_type, node.num_ports, node.info)
for port in parsed.ports:
    print(port.port_guid, port.port_num, port.port_state, port.lid)
```

You can also call `parse_log`, `parse_info_file`, `parse_nodes`,
`parse_sys_info` and `parse_ports` directly. Each takes lines of text.

## Storage

`fabriclog.database.Database(path, op_timeout)` opens an SQLite file. It
creates the tables `logs`, `nodes`, `nodes_info` and `ports` if they do not
exist yet. Three classes read and write records through it:

- `LogsRepository`
- `NodesRepository`
- `PortsRepository`

Reading a missing log or node raises `fabriclog.errors.NotFoundError`.

`LogsService.parse(file_path)` works in these steps:

1. It creates a log record with status `processing`.
2. It parses the archive.
3. It stores every node.
4. It stores the ports whose port GUID equals the GUID of a stored node. Other
   ports are skipped.
5. It sets the status to `done` and records the number of parsed nodes and
   ports.

If any step fails, the record is marked `failed` and the error is raised
again. `parse` must run inside `fabriclog.logger.use_logger(...)`. The HTTP
middleware takes care of this for you.

## Running the server

```
pip install .
fabriclog
```

The command takes no options. All settings come from the environment:

| Variable                | Meaning                                        | Default |
|-------------------------|------------------------------------------------|---------|
| `LOGGER_FOLDER`         | directory for log files (required)             |         |
| `LOGGER_LEVEL`          | `debug`, `info`, `warn`, `error`, `dpanic`, `panic` or `fatal` (lower or upper case) | `DEBUG` |
| `HTTP_ADDR`             | `host:port` to listen on (required); an empty host listens on all addresses | |
| `HTTP_SHUTDOWN_TIMEOUT` | how long a graceful stop may take, e.g. `30s`, `1m30s` | `30s` |
| `POSTGRES_DB`           | path of the SQLite database file (required)    |         |
| `POSTGRES_TIMEOUT`      | database lock timeout, e.g. `5s` (required)    |         |
| `POSTGRES_HOST`         | required, but not used for the connection      |         |
| `POSTGRES_USER`         | required, but not used for the connection      |         |
| `POSTGRES_PASSWORD`     | required, but not used for the connection      |         |
| `POSTGRES_PORT`         | not used for the connection                    | `5432`  |

If a prefixed variable is not set, the same name without its prefix is used
instead. For example, `FOLDER` stands in for `LOGGER_FOLDER`.

Example:

```
LOGGER_FOLDER=./out/logs HTTP_ADDR=:8080 \
POSTGRES_DB=./fabriclog.db POSTGRES_TIMEOUT=5s \
POSTGRES_HOST=localhost POSTGRES_USER=user POSTGRES_PASSWORD=password \
fabriclog
```

Each run writes its log to a new file in `LOGGER_FOLDER`. The file is named
after the UTC start time. The same lines also go to standard output.

The server stops cleanly on SIGINT or SIGTERM. The command exits with status
1 in these cases:

- the logger cannot be set up
- the database cannot be set up
- the HTTP settings are missing or malformed

You can also get the server from code. `fabriclog.app.build_server(db,
logger, server_config)` returns a `fabriclog.http_server.HTTPServer`. Its
`wsgi_app` method can be served by any WSGI server.

## HTTP API

Every route lives under `/api/v1`. A request to `/api/v1` itself is
redirected to `/api/v1/`.

| Method | Path                 | Result                                                 |
|--------|----------------------|--------------------------------------------------------|
| POST   | `/parse`             | parses `{"file_path": "..."}`, answers 201 `{"log_id": N}` |
| GET    | `/log/{id}`          | the upload record of a parsed log                      |
| GET    | `/topology/{log_id}` | `{"nodes": [...]}` for one log                         |
| GET    | `/node/{id}`         | one node with its `info` block, or `null`              |
| GET    | `/port/{node_id}`    | `{"ports": [...]}` for one node                        |

The `file_path` in a parse request names a file on the server's own disk.

A log record has these fields:

- `id`
- `file_name`
- `status`, which is `processing`, `done` or `failed`
- `uploaded_at`, an RFC 3339 time in UTC
- `node_count`
- `parse_count`, which holds the number of ports

Each node carries `node_type` as `"switch"` for type 2 and `"host"` for any
other type.

Every response carries an `X-Request-ID` header. If the request already had
one, the same value is sent back; otherwise a new UUID is generated.

Errors come back as `{"message": ..., "error": ...}` with one of these
statuses:

- 400 for a bad body or a non-integer id
- 404 for unknown ids
- 409 for conflicts
- 500 for anything else, including archives that fail to parse

An unknown path gets a plain-text 404. A known path with the wrong method gets
405.

## What it does not do

- It does not connect to a PostgreSQL server. Storage is a local SQLite file,
  and the host, user, password and port settings are only checked, never used.
- It ships no database migration tooling. The schema is created when the
  database is opened.

## Tests

```
pip install ".[test]"
pytest
```