from xcode_cloud_mcp.server import main

main()
