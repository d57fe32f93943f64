import pytest


SAMPLE_REQUEST = (
    "height: 0\n"
    'data: (&(struct{("0000001" string),(g1creatoraddr0000000000000000000000000 std.Address),'
    "(struct{(1730000000 int64),(0 int32),(nil *time.Location)} time.Time),"
    '("ETH/USD price on 2025-10-27, 12:00 UTC (Coinbase)?" string),(false bool),(3500 int64),'
    '("g1proposeraddr000000000000000000000000" std.Address),(1000000 int64),(nil std.Address),(0 int64),'
    "(ref(7fe1a2c9:4) time.Time),(0 int64),(1 gno.land/r/intermarch3/goo.State),"
    "(struct{(1730086400 int64),(0 int32),(nil *time.Location)} time.Time)"
    "} gno.land/r/intermarch3/goo.DataRequest) *gno.land/r/intermarch3/goo.DataRequest)\n"
)

SAMPLE_DISPUTE = (
    "height: 0\n"
    'data: (&(struct{("0000001" string),'
    '(slice[(struct{(g1voterone std.Address),("a1b2" string)} gno.land/r/intermarch3/goo.Vote),'
    '(struct{(g1votertwo std.Address),("c3d4" string)} gno.land/r/intermarch3/goo.Vote)] []gno.land/r/intermarch3/goo.Vote),'
    "(map{} map[std.Address]int),(1 int64),(false bool),(0 int64),"
    "(ref(aa01:2) time.Time),(struct{(1730090000 int64),(0 int32),(nil *time.Location)} time.Time)"
    "} gno.land/r/intermarch3/goo.Dispute) *gno.land/r/intermarch3/goo.Dispute)\n"
)


@pytest.fixture(autouse=True)
def goo_home(tmp_path, monkeypatch):
    home = tmp_path / "goo_home"
    monkeypatch.setenv("GOO_HOME", str(home))
    for name in ("GOO_KEY_NAME", "GOO_REALM_PATH", "GOO_CHAIN_ID", "GOO_REMOTE", "GOO_GNOKEY_BIN"):
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture
def request_reply():
    return SAMPLE_REQUEST


@pytest.fixture
def dispute_reply():
    return SAMPLE_DISPUTE
