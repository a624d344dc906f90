from signed_inbox.main import run

run()
