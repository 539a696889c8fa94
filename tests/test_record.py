import stat
import pytest
from pathlib import Path
from pkm.lib.keys import init_user
from pkm.lib.session import open_session
from pkm.lib.record import encode_record, decode_record, read_record, write_record
from pkm.lib.errors import AuthFailed, CorruptRecord, NotFound

def session(tmp_path: Path, user='alice', pw='pw'):
	init_user(tmp_path, user, pw)
	return open_session(tmp_path, user, pw)

def test_encode_has_magic_and_hides_payload(tmp_path: Path):
	s = session(tmp_path)
	data = encode_record(s, {'title': 'secret title'})
	assert data[:4] == b'PKM\n'
	assert b'secret title' not in data
	assert decode_record(s, data) == {'title': 'secret title'}

def test_encode_is_canonical_json(tmp_path: Path):
	s = session(tmp_path)
	data = encode_record(s, {'b': 1, 'a': [1, 2]})
	assert s.decrypt(data[4:]) == b'{"a":[1,2],"b":1}'

@pytest.mark.parametrize('data', [b'', b'PKM', b'XXXX' + b'\x00' * 40, b'PKM\r' + b'\x00' * 40, b'PKM\n123'])
def test_decode_corrupt_framing(tmp_path: Path, data):
	s = session(tmp_path)
	with pytest.raises(CorruptRecord):
		decode_record(s, data)

def test_decode_tampered_body(tmp_path: Path):
	s = session(tmp_path)
	data = bytearray(encode_record(s, {'x': 1}))
	data[-1] ^= 0x80
	with pytest.raises(AuthFailed):
		decode_record(s, bytes(data))

def test_decode_malformed_payload(tmp_path: Path):
	s = session(tmp_path)
	with pytest.raises(CorruptRecord):
		decode_record(s, b'PKM\n' + s.encrypt(b'{not json'))

def test_decode_with_wrong_user(tmp_path: Path):
	alice = session(tmp_path, 'alice')
	bob = session(tmp_path, 'bob')
	with pytest.raises(AuthFailed):
		decode_record(bob, encode_record(alice, {'x': 1}))

def test_write_and_read_record(tmp_path: Path):
	s = session(tmp_path)
	path = tmp_path / 'alice' / 'sub' / 'n.pkm'
	write_record(path, s, {'id': 'n'})
	assert stat.S_IMODE(path.stat().st_mode) == 0o600
	assert not path.with_name('n.pkm.tmp').exists()
	assert read_record(path, s) == {'id': 'n'}
	write_record(path, s, {'id': 'n', 'v': 2})
	assert read_record(path, s) == {'id': 'n', 'v': 2}

def test_read_missing_record(tmp_path: Path):
	s = session(tmp_path)
	with pytest.raises(NotFound):
		read_record(tmp_path / 'alice' / 'missing.pkm', s)

def test_write_record_tightens_leftover_tmp(tmp_path: Path):
	s = session(tmp_path)
	path = tmp_path / 'alice' / 'n.pkm'
	path.parent.mkdir(parents=True, exist_ok=True)
	tmp = path.with_name('n.pkm.tmp')
	tmp.write_bytes(b'stale')
	tmp.chmod(0o644)
	write_record(path, s, {'id': 'n'})
	assert stat.S_IMODE(path.stat().st_mode) == 0o600
	assert read_record(path, s) == {'id': 'n'}
