# huabot

A group chat bot built from plugins. Each plugin registers matchers (full
match, prefix, suffix, keyword, regular expression) on a `huabot.core.Bot`;
the bot hands every incoming `Event` to the plugins in registration order and
collects what the handlers send.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Running the bot

```
huabot [options] [superuser-id ...]
```

Every positional argument that is an integer is added to the superusers; a
built-in superuser id is always added as well.

| Option      | Meaning                                            | Default               |
|-------------|----------------------------------------------------|-----------------------|
| `-h`        | Print the banner and usage, then exit              |                       |
| `-d`        | Log at debug level and higher                      | off                   |
| `-w`        | Log at warning level and higher (overrides `-d`)   | off                   |
| `-t TOKEN`  | Access token stored for the WebSocket client       | empty                 |
| `-u URL`    | WebSocket URL stored in the configuration          | `ws://127.0.0.1:6700` |
| `-n NAME`   | Default nickname; `花` and `种花家` are added       | `花花`                |
| `-p PREFIX` | Command prefix                                     | `/`                   |
| `-c FILE`   | Load the configuration from a JSON file            |                       |
| `-s FILE`   | Save the configuration built from the options and exit |                   |

Write a configuration file, then start from it:

```
huabot -u ws://127.0.0.1:6700 -t token -s bot.json
huabot -c bot.json
```

The command prints the banner, then reads messages from standard input, one
per line. Each line is handled as a private message from the first superuser,
and every reply is printed as one line, non-text segments in `[CQ:type,...]`
form. The command loads the `chat`, `aiwife`, `baidu` and `choose` plugins and
the built-in commands: `/help`, `.help` or `菜单` show the banner, and
`查看zbp公告` (admins) shows the notice. The notice is read from the file named
by the `HUABOT_KANBAN` environment variable.

`huabot.logformat.LogFormat` is a `logging.Formatter` that writes coloured
`[LEVEL] message` lines.

## Plugins

Every module in `huabot.plugins` has `register(bot)`.

- `choose` – `选择A还是B`: lists the options and picks one
- `baidu` – `百度下xxx`: a search link
- `aiwife` – `waifu`, `随机waifu`: a random portrait link
- `chat` – answers to the bot's name and to pokes (token-bucket limited), and
  a per-group "air conditioner" (`空调开`, `空调关`, `设置温度N`, `群温度`)
- `aifalse` – `系统状态` and friends: CPU, memory and disk usage via psutil;
  `设置默认限速为每 m 分钟|秒 n 次触发` stores the default limit
- `aireply` – reply modes (`设置回复模式`) and voice modes (`设置语音模式`,
  `设置默认语音模式`); numbers in replies can be spelled in Chinese with
  `numbers_to_chinese`
- `b14` – base16384: `加密xxx`, `解密xxx`, and `encode`/`decode` functions
- `bilibili_api`, `bilibili` – user search, streamer statistics, followings,
  medals; `查成分` reports which known streamers a user follows; `更新vup`
  refreshes the streamer list; `设置b站cookie` stores the cookie
- `book_review`, `cpstory`, `curse`, `funny` – random texts from sqlite files
- `chouxianghua` – `抽象翻译xxx`: characters replaced by emoji of the same sound
- `drift_bottle` – throw, pick up and count bottles in named channels
- `emojimix` – two emoji in one message: a link to their combined picture
- `fortune` – `运势`/`抽签`: a daily slip and background, `设置底图` picks the set
- `genshin` – `原神十连` ten-pull draws, `切换原神卡池` toggles the five-star pool

Plugins that keep files read their folder from an environment variable, with a
default under `data/`: `HUABOT_BILIBILI_DATA`, `HUABOT_BOOKREVIEW_DATA`,
`HUABOT_CHOUXIANGHUA_DATA`, `HUABOT_CPSTORY_DATA`, `HUABOT_CURSE_DATA`,
`HUABOT_FUNNY_DATA`, `HUABOT_DRIFTBOTTLE_DATA`, `HUABOT_FORTUNE_DATA` (with
`text.json` and one zip per background set) and `HUABOT_GENSHIN_DATA` (with
`Genshin.zip`).

## Using the core in code

```python
from huabot.core import Config, Event, build_bot, text
from huabot.plugins import choose

bot = build_bot(Config())
choose.register(bot)
ctx = bot.handle(Event([text("选择茶还是咖啡")], user_id=1, message_id=1))
print(ctx.sent)
```

## What the package does not do

- It does not connect to a WebSocket endpoint. The URL and token are kept in
  the configuration only; the `huabot` command talks through standard input
  and output.
- It ships no AI reply or speech backends: `aireply.REPLY_BACKENDS` and
  `aireply.TTS_FACTORIES` are empty until the deployment fills them, and until
  then those plugins stay silent.
- It draws no pictures: the `查成分` report, fortune slips and gacha results
  are sent as text (fortune adds the background image file).
- It downloads no data files; the databases and archives must be put in place.