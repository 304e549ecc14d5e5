import io
import os
import threading
from http.server import HTTPServer, BaseHTTPRequestHandler

import aiohttp
import discord
from discord.ext import commands
from dotenv import load_dotenv

from moonsec_deobf import MoonsecDeobfuscator, Settings, BatchItem, __version__
from moonsec_deobf.report import render_result, render_analysis, render_batch
from moonsec_deobf.session import dump_session, session_filename

# Load environment variables from .env file
load_dotenv()
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")
PORT = int(os.getenv("PORT", 10000))

MESSAGE_LIMIT = 1900  # Discord caps messages at 2000 chars

deobfuscator = MoonsecDeobfuscator(Settings.from_env())


# --- Simple HTTP Server for Render Health Checks ---
class HealthCheckHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        if self.path == '/health':
            body = f"OK moonsec-deobf {__version__}".encode()
            self.send_response(200)
            self.send_header('Content-type', 'text/plain')
            self.end_headers()
            self.wfile.write(body)
        else:
            self.send_response(404)
            self.end_headers()

    def log_message(self, format, *args):
        # no per-request access log
        pass


def run_http_server():
    with HTTPServer(("", PORT), HealthCheckHandler) as httpd:
        print(f"HTTP server listening on port {PORT} for health checks...")
        httpd.serve_forever()
# ----------------------------------------------------


def run_method(source_code: str, method: str):
    """
    Runs the selected action on fetched source.
    Returns the text to post and, for deobfuscation, the raw result (None otherwise).
    """
    if method == "Deobfuscate":
        result = deobfuscator.deobfuscate(source_code)
        return render_result(result), result
    elif method == "Analyze":
        return render_analysis(deobfuscator.analyze(source_code)), None
    else:
        return f"--- Unknown Method: {method} ---", None


def parse_option_list(raw: str) -> list:
    """Splits 'remove_junk, auto-format' into known setting names."""
    names = [name.strip().lower().replace('-', '_') for name in raw.split(',') if name.strip()]
    unknown = [name for name in names if name not in Settings.option_names()]
    if unknown:
        raise ValueError(f"Unknown option(s): {', '.join(unknown)}. "
                         f"Available: {', '.join(Settings.option_names())}")
    return names


def describe_settings(settings: Settings) -> str:
    return "\n".join(f"- {name}: {'on' if value else 'off'}" for name, value in settings.to_dict().items())


class SettingsModal(discord.ui.Modal, title="Deobfuscation Settings"):
    enable_input = discord.ui.TextInput(
        label="Enable (comma-separated)",
        placeholder="e.g., remove_junk, auto_format",
        required=False,
        max_length=500
    )
    disable_input = discord.ui.TextInput(
        label="Disable (comma-separated)",
        placeholder="e.g., aggressive_mode",
        required=False,
        max_length=500
    )

    async def on_submit(self, interaction: discord.Interaction):
        try:
            options = {name: True for name in parse_option_list(self.enable_input.value)}
            options.update({name: False for name in parse_option_list(self.disable_input.value)})
            settings = deobfuscator.configure(**options)
        except ValueError as e:
            await interaction.response.send_message(str(e), ephemeral=True)
            return

        await interaction.response.send_message(
            f"Settings updated:\n{describe_settings(settings)}",
            ephemeral=True
        )


class DeobfView(discord.ui.View):
    def __init__(self, bot_instance):
        super().__init__(timeout=180)  # 3 minutes timeout
        self.bot_instance = bot_instance

    async def on_timeout(self):
        for item in self.children:
            item.disabled = True

    async def _send_url_prompt(self, interaction: discord.Interaction, method: str):
        await interaction.response.send_message(
            f"You selected **{method}**. Please paste the URL of the obfuscated Lua/Luau code:",
            ephemeral=True
        )
        self.bot_instance.waiting_for_url[interaction.user.id] = {"method": method, "channel_id": interaction.channel_id}

    @discord.ui.button(label="Deobfuscate", style=discord.ButtonStyle.primary)
    async def deobfuscate_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._send_url_prompt(interaction, "Deobfuscate")

    @discord.ui.button(label="Analyze", style=discord.ButtonStyle.secondary)
    async def analyze_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._send_url_prompt(interaction, "Analyze")

    @discord.ui.button(label="Settings", style=discord.ButtonStyle.success)
    async def settings_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.send_modal(SettingsModal())


# Set up bot intents
intents = discord.Intents.default()
intents.message_content = True

bot = commands.Bot(command_prefix="!", intents=intents)
bot.waiting_for_url = {}  # user id -> pending method and channel


@bot.event
async def on_ready():
    """Event handler for when the bot has connected to Discord."""
    print(f'Logged in as {bot.user.name}')
    print('Bot is ready to deobfuscate!')


@bot.command(name="deobf", help="Starts the Lua deobfuscation process.")
async def deobf_command(ctx: commands.Context):
    """Sends a menu with deobfuscation options."""
    view = DeobfView(bot)
    await ctx.send("What do you want to do with your Lua code?", view=view)


@bot.command(name="batch", help="Deobfuscates every Lua file attached to the message.")
async def batch_command(ctx: commands.Context):
    attachments = ctx.message.attachments
    if not attachments:
        await ctx.send("Attach one or more .lua files to `!batch`.")
        return

    items = []
    for attachment in attachments:
        data = await attachment.read()
        items.append(BatchItem(attachment.filename, data.decode('utf-8', errors='replace')))

    summary = render_batch(deobfuscator.batch_process(items))
    await send_output(ctx, ctx.author.id, "Batch", summary, language="")


async def send_output(channel, author_id: int, method: str, text: str, result=None, language: str = "lua"):
    """Posts text in a code block, or as an attached file when it does not fit in one message."""
    if len(text) <= MESSAGE_LIMIT:
        await channel.send(f"```{language}\n{text}\n```")
        return

    extension = ".lua" if language == "lua" else ".txt"
    filename = f"{author_id}_{method.lower()}_output{extension}"
    files = [discord.File(io.BytesIO(text.encode('utf-8')), filename=filename)]
    if result is not None:
        session = dump_session(result, deobfuscator.settings)
        files.append(discord.File(io.BytesIO(session.encode('utf-8')), filename=session_filename()))
    await channel.send(f"{method} output (too long for message):", files=files)


@bot.event
async def on_message(message: discord.Message):
    if message.author == bot.user:
        return

    user_id = message.author.id
    pending = bot.waiting_for_url.get(user_id)
    if pending and message.channel.id == pending["channel_id"]:
        url = message.content.strip()
        method = pending["method"]
        del bot.waiting_for_url[user_id]

        if not (url.startswith("http://") or url.startswith("https://")):
            await message.channel.send("That doesn't look like a valid URL. Please try again with a valid URL.")
            return

        await message.channel.send(f"Fetching code from {url} ({method})...")

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(url) as resp:
                    if resp.status == 200:
                        source_code = await resp.text()
                        text, result = run_method(source_code, method)
                        await send_output(message.channel, user_id, method, text, result)
                    else:
                        await message.channel.send(f"Failed to fetch code from {url}. Status: {resp.status}")
        except aiohttp.ClientError as e:
            await message.channel.send(f"An error occurred while fetching the URL: {e}")
        except Exception as e:
            await message.channel.send(f"An unexpected error occurred: {e}")

    await bot.process_commands(message)


if __name__ == "__main__":
    if not DISCORD_TOKEN:
        print("Error: DISCORD_TOKEN not found. Please set it as an environment variable or in .env.")
    else:
        # Start the health check server in a background thread
        http_thread = threading.Thread(target=run_http_server, daemon=True)
        http_thread.start()

        bot.run(DISCORD_TOKEN)
