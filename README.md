# voidcloud

`voidcloud` gives you command-line access to the Void Cloud Platform. It
installs one command, `void-cloud`, with two subcommands:

- `login` — tell the platform who you are
- `deploy` — share your game with others

`void-cloud --version` prints the version; `void-cloud` with no subcommand
prints the help.

## Installation

```
pip install voidcloud
```

## Logging in

```
void-cloud login
```

If a token is already stored for the server, it is checked against the
server's `api/account/me` endpoint; when it is accepted you are logged in
straight away. A stored token that the server rejects is discarded.

Otherwise a small callback server is started on `127.0.0.1` (on a free
port), and the address of the platform's login page is printed to standard
error with the request to open it in your browser. The login page hands the
token back to the callback server at `/callback` (as the `jwt` query or form
parameter). The command waits up to two minutes for it. The token is then
checked against the server and stored, and the logged-in user is printed
as JSON.

Tokens are kept in a `keyring.json` file in your per-user configuration
directory (as chosen by `platformdirs` for the application name
`voidcloud`), one section per server.

Options:

| Option         | Environment variable | Meaning                                            |
|----------------|----------------------|----------------------------------------------------|
| `--server URL` | `SERVER`             | server endpoint (the production server by default) |

## Deploying a game

```
void-cloud deploy --org ORG --game GAME PATH [LABEL]
```

`PATH` must be a directory holding your built game. Every file below it is
hashed with BLAKE3 and sent to the server as a manifest, in sorted walk
order; files whose names end in `.ssh`, `.git` or `.env` are left out. The
server answers with the files it does not already have, and only those are
uploaded, up to eight at a time. When all uploads succeed the deploy is
activated and its address is printed.

An optional `LABEL` deploys under that label.

Options:

| Option          | Environment variable | Meaning                                                               |
|-----------------|----------------------|-----------------------------------------------------------------------|
| `--server URL`  | `SERVER`             | server endpoint                                                       |
| `--org ORG`     | `ORG`                | organization ID                                                       |
| `--game GAME`   | `GAME`               | game ID                                                               |
| `--token TOKEN` | `TOKEN`              | personal access token; if omitted, the token stored by `login` is used |

Example:

```
export ORG=my-studio
export GAME=my-game
void-cloud deploy ./build beta
```

Output looks like:

```
Deploying ./build ...
deploying 3 / 42 files
deploying index.html
deploying game.wasm
deploying assets/sprites.png
Deployed to <address of your game>
```

When every file has to be uploaded, the second line reads
`deploying ALL 42 files`.

## Errors

Failures are printed to standard error and the command exits with
status 1. From Python they are raised as `voidcloud.account.LoginError`
and `voidcloud.share.DeployError` (and `OSError` for file and network
problems).

## Using it from Python

- `voidcloud.account.login(command)` with a `voidcloud.account.LoginCommand`
  (`server`, `runtime`, `keyring`, `timeout` in seconds) returns a
  `voidcloud.account.User` (`id`, `name`).
- `voidcloud.share.deploy(command)` with a `voidcloud.share.DeployCommand`
  (`api`, `org`, `game`, `label`, `path`, and the optional callbacks
  `on_started` and `on_upload`) returns a `voidcloud.share.DeployResult`
  (`deploy_id`, `slug`, `url`, `manifest`).
- `voidcloud.share.build_manifest(path)` returns the list of
  `DeployEntry` records (`path`, `blake3`, `content_length`) for a directory.
- `voidcloud.api.Client(server, token)` sends bearer-authorized requests to
  routes below `api/` on the server (`get`, `post`, `post_json`,
  `post_file`); `voidcloud.api.route(*parts)` joins route parts.
- `voidcloud.crypto.blake3(value)` returns the hex BLAKE3 digest of a string,
  bytes or a readable file object.
- `voidcloud.pp.to_json(value)` renders a value as two-space indented JSON;
  `voidcloud.pp.dedent(text)` removes a common leading margin.
- `voidcloud.web.respond(status, value, handler)` and its `respond_ok`,
  `respond_accepted` and `respond_bad_request` shortcuts write a plain-text
  or JSON response from an `http.server` request handler.
- `voidcloud.system` holds `identify`, `current` and `open_command` for the
  operating system, the `Keyring` and `Runtime` interfaces, and their
  `SystemKeyring` and `SystemRuntime` implementations.

## What it does not do

- It does not launch a browser. The default `SystemRuntime` works out the
  operating system's open command but only prints the login address for
  you to open; pass your own `execute_command` to `SystemRuntime` to act
  on it differently.
- It does not use the operating system's credential store. Tokens are kept
  in a plain JSON file in your configuration directory.