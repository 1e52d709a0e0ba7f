# gator

`gator` is a small command-line RSS aggregator. It keeps a list of users,
the feeds they have added and the feeds they follow, fetches every feed
at a fixed interval and stores new posts, and lets you browse the latest
posts from the feeds you follow. Everything is kept in a SQLite database.

## Installation

```
pip install .
```

This installs the `gator` command. There are no third-party dependencies.

## Configuration

`gator` reads its settings from `~/.gatorconfig.json`:

```json
{
  "db_url": "gator.db",
  "current_user_name": ""
}
```

- `db_url` is the SQLite database: either a file path or a
  `sqlite:///path` URL. The tables are created on first use. An empty
  value (or `sqlite://`) opens an in-memory database, which is lost when
  the command ends. Any other `scheme://` URL is refused.
- `current_user_name` is filled in for you by `gator register` and
  `gator login`; the file is rewritten each time.

If the file is missing or cannot be read, `gator` prints the error and
carries on with empty settings, that is, with an in-memory database.

## Usage

```
gator <command> [args...]
```

User commands:

| Command                 | What it does                                                   |
|-------------------------|----------------------------------------------------------------|
| `gator register <name>` | Create a user and log in as that user                          |
| `gator login <name>`    | Log in as an existing user                                     |
| `gator users`           | List all users, marking the current one with `(current)`       |
| `gator reset`           | Delete all users, and with them their feeds, follows and posts |

Feed commands (those marked * need a logged-in user):

| Command                        | What it does                                          |
|--------------------------------|-------------------------------------------------------|
| `gator addfeed <name> <url>` * | Add a feed and follow it                              |
| `gator feeds`                  | List all feeds and who added them                     |
| `gator follow <url>` *         | Follow a feed that has already been added             |
| `gator unfollow <url>` *       | Stop following a feed                                 |
| `gator following` *            | List the feeds you follow                             |
| `gator browse [limit]` *       | Show the newest posts from followed feeds (default 2) |
| `gator agg <interval>`         | Fetch feeds forever, one round every interval         |

The interval for `agg` is a duration string made of numbers with units
`ns`, `us`, `ms`, `s`, `m` or `h`, for example `30s`, `1.5m` or `1h30m`;
it must be positive. Each round fetches every feed once, starting with
the one fetched least recently (feeds never fetched come first), and
stores any post whose link has not been seen before, printing its title,
publication date and link. A feed that cannot be fetched or parsed is
reported on standard error and skipped. Stop `agg` with Ctrl-C.

`browse` orders posts by their publication date as given in the feed,
compared as text.

On any error `gator` prints a message to standard error and exits with
status 1; an unknown or missing command is an error too.

### Example

```
gator register alice
gator addfeed "Example Blog" https://blog.example.com/index.xml
gator agg 1m
gator browse 5
```

## Using it as a library

- `gator.rss.parse_feed(data)` parses an RSS document into an `RSSFeed`
  with `RSSItem`s, unescaping HTML entities in titles and descriptions;
  `gator.rss.fetch_feed(url, timeout)` downloads and parses one. Both
  raise `FeedError` on failure.
- `gator.database.connect(url)` opens a database and returns a `Queries`
  object with methods such as `create_user`, `get_feeds`,
  `get_next_feed_to_fetch` and `get_posts_for_user`. Lookups that find
  nothing raise `NotFoundError`; `Queries.transaction()` groups queries
  atomically.
- `gator.config.read(path)` and `Config.set_user(username)` load and
  save the configuration file.

## What it does not do

`gator` stores its data only in SQLite; it does not connect to a
database server. It reads RSS 2.0 (`<rss><channel><item>`) documents
only, not Atom.

## Development

```
pip install -e ".[test]"
pytest
```