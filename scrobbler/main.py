import logging
from datetime import datetime, timezone

import click

from scrobbler import config as config_mod
from scrobbler.client_pool import BackendClientPool
from scrobbler.decoders import DecoderRegistry
from scrobbler.dispatcher import ScrobbleDispatcher
from scrobbler.errors import ConfigurationError
from scrobbler.lastfm_client import LastFMClient
from scrobbler.listenbrainz_client import ListenBrainzClient
from scrobbler.models import BackendKind, PlaybackEvent, TrackInfo
from scrobbler.resolvers import CredentialResolver, EnablementResolver
from scrobbler.stores import JsonFileStore

log = logging.getLogger("scrobbler")


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        force=True,  # ensure our config is used even if libs pre-configure logging
    )


def build_dispatcher(cfg: config_mod.Config, store=None) -> ScrobbleDispatcher:
    """Wire stores, decoders and backend clients into a dispatcher."""
    store = store if store is not None else JsonFileStore(cfg.data_path)
    registry = DecoderRegistry(encryption_key=cfg.encryption_key)
    pool = BackendClientPool({
        BackendKind.LASTFM: lambda: LastFMClient(cfg.lastfm_api_key, cfg.lastfm_api_secret),
        BackendKind.LISTENBRAINZ: lambda: ListenBrainzClient(cfg.listenbrainz_url, cfg.http_timeout),
    })
    return ScrobbleDispatcher(
        enablement=EnablementResolver(store),
        credentials=CredentialResolver(store, registry),
        clients=pool,
        max_workers=cfg.workers,
    )


@click.command()
@click.option("--user", "-u", required=True, help="User who played the track")
@click.option("--artist", required=True)
@click.option("--title", required=True)
@click.option("--album", default=None)
@click.option("--duration", type=int, default=None, help="Track length in seconds")
@click.option("--submission/--now-playing", default=False,
              help="Scrobble the play, or only send a now playing update")
@click.option("--video", is_flag=True, help="Mark the media as video (never scrobbled)")
@click.option("--played-at", type=click.DateTime(), default=None,
              help="When playback started (UTC); defaults to now")
def main(user, artist, title, album, duration, submission, video, played_at):
    """Send one playback event to every backend USER has enabled."""
    cfg = config_mod.from_env()
    setup_logging(cfg.log_level)

    try:
        dispatcher = build_dispatcher(cfg)
    except ConfigurationError as e:
        raise SystemExit(str(e))
    event = PlaybackEvent(
        media_ref=TrackInfo(artist=artist, title=title, album=album, duration=duration),
        username=user,
        submission=submission,
        is_video=video,
        timestamp=played_at.replace(tzinfo=timezone.utc) if played_at else datetime.now(timezone.utc),
    )
    try:
        dispatcher.register(event)
    finally:
        # A one-shot run waits for delivery before exiting
        dispatcher.shutdown(wait=True)
    log.info("Done.")


if __name__ == "__main__":
    main()
