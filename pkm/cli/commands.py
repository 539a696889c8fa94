"""CLI commands implemented with click.

Global options pick the store root and the user; every note, tag, link and
search command unlocks a session with the user's password first.
"""
from __future__ import annotations
import functools, logging
from pathlib import Path
import click
from config.settings import DEFAULT_STORE_PATH, LOG_FORMAT, LOG_LEVEL
from pkm.lib.errors import PKMError
from pkm.lib.keys import change_password, export_entry, import_entry, init_user
from pkm.lib.notes import Note
from pkm.lib.session import open_session
from pkm.lib.store import NoteStore

class Context:
	def __init__(self, store: Path, user: str | None):
		self.store = NoteStore(store)
		self.user = user

pass_ctx = click.make_pass_decorator(Context)

def password_option(f):
	return click.option('--password', envvar='PKM_PASSWORD', prompt=True, hide_input=True, help='Password (prompted if omitted).')(f)

def reports_errors(f):
	"""Turn core failures into `Error: ...` with exit status 1."""
	@functools.wraps(f)
	def wrapper(*args, **kwargs):
		try:
			return f(*args, **kwargs)
		except PKMError as e:
			raise click.ClickException(str(e)) from e
	return wrapper

def unlocked(f):
	"""Open the user's session, pass it as `session`, close it afterwards."""
	@password_option
	@pass_ctx
	@functools.wraps(f)
	def wrapper(ctx: Context, password: str, *args, **kwargs):
		if not ctx.user:
			raise click.UsageError('--user (or PKM_USER) is required')
		try:
			with open_session(ctx.store.root, ctx.user, password) as session:
				return f(ctx, session, *args, **kwargs)
		except PKMError as e:
			raise click.ClickException(str(e)) from e
	return wrapper

@click.group()
@click.option('--store', type=click.Path(file_okay=False, path_type=Path), envvar='PKM_STORE', default=DEFAULT_STORE_PATH, show_default=True, help='Note storage directory.')
@click.option('--user', envvar='PKM_USER', help='Username.')
@click.option('-v', '--verbose', is_flag=True, help='Debug logging.')
@click.pass_context
def cli(ctx, store, user, verbose):
	"""pkm: encrypted personal knowledge manager"""
	logging.basicConfig(level=logging.DEBUG if verbose else LOG_LEVEL, format=LOG_FORMAT)
	ctx.obj = Context(store, user)


# --- users (no session needed) ---

@cli.group()
def user():
	"""Create users, change passwords, move accounts between stores."""

@user.command('init')
@click.argument('username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@pass_ctx
@reports_errors
def user_init(ctx, username, password):
	"""Initialise USERNAME with a fresh data key."""
	init_user(ctx.store.root, username, password)
	click.echo(f'User {username!r} initialised.')

@user.command('passwd')
@click.argument('username')
@click.option('--old-password', prompt='Current password', hide_input=True)
@click.option('--new-password', prompt='New password', hide_input=True, confirmation_prompt=True)
@pass_ctx
@reports_errors
def user_passwd(ctx, username, old_password, new_password):
	change_password(ctx.store.root, username, old_password, new_password)
	click.echo(f'Password changed for {username!r}.')

@user.command('export')
@click.argument('username')
@password_option
@pass_ctx
@reports_errors
def user_export(ctx, username, password):
	"""Print USERNAME's wrapped key entry for transfer to another store."""
	click.echo(export_entry(ctx.store.root, username, password))

@user.command('import')
@click.argument('source', type=click.File('r'), default='-')
@pass_ctx
@reports_errors
def user_import(ctx, source):
	"""Add an exported entry read from SOURCE (stdin by default)."""
	username = import_entry(ctx.store.root, source.read())
	click.echo(f'User {username!r} imported.')


# --- notes ---

@cli.group()
def note():
	"""Create, read, edit and delete encrypted notes."""

@note.command('new')
@click.argument('title', nargs=-1, required=True)
@click.option('--content', help='Note body; opens $EDITOR when omitted.')
@unlocked
def note_new(ctx, session, title, content):
	if content is None:
		content = click.edit('') or ''
	if not content.strip():
		raise click.ClickException('No content')
	n = Note.new(' '.join(title), content)
	ctx.store.save(n, session)
	click.echo(f'Note {n.id} created.')

@note.command('show')
@click.argument('note_id')
@unlocked
def note_show(ctx, session, note_id):
	n = ctx.store.load(note_id, session)
	click.echo(f"ID: {n.id}\nTitle: {n.title}\nCreated: {n.created_at}\nTags: {', '.join(n.tags) or '-'}\nLinks: {', '.join(n.links) or '-'}\n---\n{n.content}")

@note.command('edit')
@click.argument('note_id')
@click.option('--title', help='New title.')
@click.option('--content', help='New body; opens $EDITOR when omitted.')
@unlocked
def note_edit(ctx, session, note_id, title, content):
	n = ctx.store.load(note_id, session)
	if content is None:
		edited = click.edit(n.content)
		# None means the editor was closed without saving
		content = n.content if edited is None else edited
	n.content = content
	if title:
		n.title = title
	ctx.store.save(n, session)
	click.echo(f'Note {n.id} saved.')

@note.command('delete')
@click.argument('note_id')
@unlocked
def note_delete(ctx, session, note_id):
	ctx.store.delete(note_id, session)
	click.echo(f'Note {note_id} deleted.')

@note.command('list')
@unlocked
def note_list(ctx, session):
	items = ctx.store.list(session)
	if not items:
		click.echo('No notes found!')
		return
	width_id = max(3, *(len(s.id) for s in items))
	width_title = max(5, *(len(s.title) for s in items))
	click.echo(f"{'UID':<{width_id}}  {'TITLE':<{width_title}}  TAGS")
	click.echo(f"{'-' * width_id}  {'-' * width_title}  ----")
	for s in items:
		click.echo(f"{s.id:<{width_id}}  {s.title:<{width_title}}  {','.join(s.tags)}")


# --- tags / links ---

@cli.group()
def tag():
	"""Organise notes with tags."""

@tag.command('add')
@click.argument('note_id')
@click.argument('tags')
@unlocked
def tag_add(ctx, session, note_id, tags):
	"""Add comma-separated TAGS to a note."""
	n = ctx.store.load(note_id, session)
	added = n.add_tags(tags)
	ctx.store.save(n, session)
	click.echo(f"Tagged {n.id}: {', '.join(added)}")

@tag.command('delete')
@click.argument('note_id')
@click.argument('tags')
@unlocked
def tag_delete(ctx, session, note_id, tags):
	n = ctx.store.load(note_id, session)
	removed = n.remove_tags(tags)
	ctx.store.save(n, session)
	click.echo(f"Untagged {n.id}: {', '.join(removed)}")

@cli.group()
def link():
	"""Link notes together (links are bidirectional)."""

@link.command('add')
@click.argument('source_id')
@click.argument('target_id')
@unlocked
def link_add(ctx, session, source_id, target_id):
	ctx.store.link(source_id, target_id, session)
	click.echo(f'Linked {source_id} <-> {target_id}')

@link.command('delete')
@click.argument('source_id')
@click.argument('target_id')
@unlocked
def link_delete(ctx, session, source_id, target_id):
	ctx.store.unlink(source_id, target_id, session)
	click.echo(f'Unlinked {source_id} <-> {target_id}')


# --- search ---

@cli.command()
@click.argument('kind', type=click.Choice(['keyword', 'tag']))
@click.argument('terms', nargs=-1, required=True)
@unlocked
def search(ctx, session, kind, terms):
	"""Find notes matching every TERM (keyword or tag)."""
	results = ctx.store.search(kind, list(terms), session)
	if not results:
		click.echo('No matches.')
		return
	for note_id in results:
		click.echo(note_id)
