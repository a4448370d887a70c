from spin_plugin_releaser.releaser.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
