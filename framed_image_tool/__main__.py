from framed_image_tool.app import main

main()
